"""
Profile curves for revolution surfaces.

Pure functions mapping a tier index and a deployment fraction to the radius
and height of one ring. A taper is any callable taking the normalized height
``h`` in [0, 1] and returning a radius factor.
"""

from typing import Callable, Sequence, Tuple

import numpy as np
from scipy import interpolate

Taper = Callable[[float], float]

# Top ring radius as a fraction of the base ring radius
DEFAULT_TOP_RATIO = 0.4


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between ``a`` and ``b``."""
    return a + (b - a) * t


def linear_taper(top_ratio: float = DEFAULT_TOP_RATIO) -> Taper:
    """
    Create a taper that shrinks linearly from 1 at the base to ``top_ratio`` at the top.

    Args:
        top_ratio: Radius factor at normalized height 1

    Returns:
        Taper callable
    """
    shrink = 1.0 - top_ratio

    def taper(h: float) -> float:
        return 1.0 - shrink * h

    return taper


default_taper = linear_taper()


def smooth_taper(control_factors: Sequence[float], kind: str = 'cubic') -> Taper:
    """
    Create a spline taper through evenly spaced control factors.

    The first factor applies at the base and the last at the top. The
    control values are treated as hints for a smooth curve, so the radius
    between control points may overshoot slightly.

    Args:
        control_factors: Radius factors at evenly spaced heights (at least 2)
        kind: Interpolation kind ('linear', 'quadratic', 'cubic')

    Returns:
        Taper callable
    """
    n = len(control_factors)
    if n < 2:
        raise ValueError(f"Need at least 2 control factors, got {n}")
    # interp1d needs more points than the spline order
    if kind == 'cubic' and n < 4:
        kind = 'quadratic' if n == 3 else 'linear'
    elif kind == 'quadratic' and n < 3:
        kind = 'linear'

    positions = np.linspace(0.0, 1.0, n)
    curve = interpolate.interp1d(positions, list(control_factors), kind=kind,
                                 fill_value='extrapolate', assume_sorted=True)

    def taper(h: float) -> float:
        return max(float(curve(h)), 0.0)

    return taper


def tier_height(tier: int, tier_count: int, deployment: float,
                stowed_height: float, deployed_height: float) -> float:
    """
    Height of a tier: the deployed/stowed height blend scaled by ``tier / tier_count``.
    """
    return lerp(stowed_height, deployed_height, deployment) * (tier / tier_count)


def tier_radius(tier: int, tier_count: int, deployment: float,
                stowed_radius: float, deployed_radius: float,
                taper: Taper = default_taper) -> float:
    """
    Radius of a tier: the deployed/stowed base radius blend times the taper factor.
    """
    return lerp(stowed_radius, deployed_radius, deployment) * taper(tier / tier_count)


def evaluate_tier(tier: int, tier_count: int, deployment: float,
                  stowed_radius: float, deployed_radius: float,
                  stowed_height: float, deployed_height: float,
                  taper: Taper = default_taper) -> Tuple[float, float]:
    """
    Evaluate one ring of a deployable dome profile.

    Args:
        tier: Tier index in [0, tier_count]
        tier_count: Number of side strips (tiers above the floor ring)
        deployment: Deployment fraction, 0 = stowed, 1 = deployed
        stowed_radius: Base radius when stowed
        deployed_radius: Base radius when deployed
        stowed_height: Total height when stowed
        deployed_height: Total height when deployed
        taper: Radius factor as a function of normalized height

    Returns:
        Tuple of (radius, height)
    """
    radius = tier_radius(tier, tier_count, deployment, stowed_radius, deployed_radius, taper)
    height = tier_height(tier, tier_count, deployment, stowed_height, deployed_height)
    return radius, height
