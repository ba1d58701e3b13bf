#!/usr/bin/env python3
"""
Parameter CSV Generation Script

This script generates a CSV file of shape parameter rows from abstract design requirements.
It translates high-level requirements such as a deployment sweep into the
detailed parameter format read by generate_shape.
"""

import argparse
import csv
import logging
import math
from typing import List, Sequence

import numpy as np

from protoforge.errors import InvalidParameterError, ProtoforgeError
from protoforge.logging_config import parse_level, setup_logging
from protoforge.params import (ChassisParameters, FusorParameters, HabitatParameters,
                               ShapeParameters, parameters_to_row)
from protoforge.profiles import DEFAULT_TOP_RATIO

logger = logging.getLogger(__name__)

# Grid radii of the reference fusor relative to the chamber and outer grid
OUTER_GRID_RATIO = 50.0 / 80.0
INNER_GRID_RATIO = 15.0 / 50.0

# Number of control factors used for a bulged dome profile
TAPER_CONTROL_POINTS = 5


def deployment_steps(n_steps: int) -> List[float]:
    """
    Evenly spaced deployment fractions from stowed (0) to deployed (1).

    Args:
        n_steps: Number of rows in the sweep, at least 1

    Returns:
        List of deployment fractions; a single step is the deployed state
    """
    if n_steps < 1:
        raise InvalidParameterError(f"n_steps must be at least 1, got {n_steps}")
    if n_steps == 1:
        return [1.0]
    return [float(t) for t in np.linspace(0.0, 1.0, n_steps)]


def habitat_taper_control(top_ratio: float = DEFAULT_TOP_RATIO, bulge: float = 0.0,
                          n_points: int = TAPER_CONTROL_POINTS) -> List[float]:
    """
    Generate taper control factors for a dome profile.

    Args:
        top_ratio: Radius factor at the top ring
        bulge: Outward bulge [0,1] of the wall between floor and roof
               0 = straight linear taper
               1 = wall pushed out by up to half the taper span at mid height

    Returns:
        Radius factors at evenly spaced heights, 1.0 at the base
    """
    if n_points < 2:
        raise InvalidParameterError(f"n_points must be at least 2, got {n_points}")
    if not 0.0 <= bulge <= 1.0:
        raise InvalidParameterError(f"bulge must be between 0 and 1, got {bulge}")

    factors = []
    for i in range(n_points):
        h = i / (n_points - 1)
        straight = 1.0 - (1.0 - top_ratio) * h
        # Raised sine, zero at floor and roof
        swell = 0.5 * (1.0 - top_ratio) * bulge * math.sin(h * math.pi)
        factors.append(straight + swell)
    # Base factor stays exactly 1
    factors[0] = 1.0
    return factors


def fusor_grid_radii(chamber_radius: float, outer_ratio: float = OUTER_GRID_RATIO,
                     inner_ratio: float = INNER_GRID_RATIO) -> List[float]:
    """Outer and inner grid radii scaled from the chamber radius."""
    outer = chamber_radius * outer_ratio
    return [outer, outer * inner_ratio]


def habitat_sweep(n_steps: int, bulge: float = 0.0, **overrides) -> List[HabitatParameters]:
    """Habitat parameter records for a deployment sweep."""
    control = tuple(habitat_taper_control(bulge=bulge)) if bulge > 0 else ()
    rows = []
    for t in deployment_steps(n_steps):
        params = HabitatParameters(deployment=t, taper_control=control, **overrides)
        params.validate()
        rows.append(params)
    return rows


def scaled_fusor(chamber_radius: float, **overrides) -> FusorParameters:
    """Fusor parameters with grid radii scaled to the chamber."""
    outer, inner = fusor_grid_radii(chamber_radius)
    params = FusorParameters(chamber_outer_radius=chamber_radius,
                             outer_grid_radius=outer, inner_grid_radius=inner, **overrides)
    params.validate()
    return params


def write_params_csv(output_file: str, rows: Sequence[ShapeParameters], start_index: int = 0) -> None:
    """
    Write parameter records as CSV rows.

    Rows of different shapes may be mixed; the header is the union of all
    fields and cells of other shapes' fields are left empty.

    Args:
        output_file: Path to the output CSV file
        rows: Parameter records
        start_index: case_index of the first row
    """
    header = ['case_index', 'shape']
    cells = []
    for offset, params in enumerate(rows):
        row = {'case_index': start_index + offset, 'shape': params.shape}
        row.update(parameters_to_row(params))
        for key in row:
            if key not in header:
                header.append(key)
        cells.append(row)

    with open(output_file, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=header, restval='')
        writer.writeheader()
        writer.writerows(cells)
    logger.info("Wrote %d parameter rows to %s", len(cells), output_file)


def main(argv=None):
    """Main function for command-line interface."""
    parser = argparse.ArgumentParser(
        description='Generate shape parameter CSV rows from abstract requirements',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reference habitat, deployed
  protoforge-params habitat.csv habitat

  # Deployment sweep in 5 steps with a bulged wall
  protoforge-params sweep.csv habitat --steps 5 --bulge 0.6

  # Fusor scaled to a 120 mm chamber
  protoforge-params fusor.csv fusor --chamber-radius 120

  # Chassis without wheel wells
  protoforge-params chassis.csv chassis --no-wheel-wells
        """
    )
    parser.add_argument('output', help='Output CSV file path')
    parser.add_argument('shape', choices=['fusor', 'habitat', 'chassis'], help='Shape to parameterize')
    parser.add_argument('--steps', type=int, default=1,
                        help='Habitat: number of deployment steps from stowed to deployed (default: 1)')
    parser.add_argument('--bulge', type=float, default=0.0,
                        help='Habitat: outward wall bulge [0,1] (default: 0.0)')
    parser.add_argument('--segments', type=int, default=None,
                        help='Habitat: facets per ring')
    parser.add_argument('--chamber-radius', type=float, default=None,
                        help='Fusor: chamber outer radius; grid radii scale with it')
    parser.add_argument('--no-wheel-wells', action='store_true',
                        help='Chassis: omit the wheel wells')
    parser.add_argument('--case-index', type=int, default=0,
                        help='Case index of the first row (default: 0)')
    parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                        help='Logging level (default: info)')

    args = parser.parse_args(argv)
    setup_logging(parse_level(args.log_level))

    try:
        if args.shape == 'habitat':
            overrides = {} if args.segments is None else {'segments': args.segments}
            rows = habitat_sweep(args.steps, bulge=args.bulge, **overrides)
        elif args.shape == 'fusor':
            rows = [FusorParameters() if args.chamber_radius is None else scaled_fusor(args.chamber_radius)]
        else:
            rows = [ChassisParameters(wheel_wells=not args.no_wheel_wells)]
        write_params_csv(args.output, rows, start_index=args.case_index)
    except ProtoforgeError as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        return 1

    print(f"Generated parameter file: {args.output}")
    print(f"  Shape: {args.shape}")
    print(f"  Rows: {len(rows)}")
    if args.shape == 'habitat':
        print(f"  Deployment: {[f'{p.deployment:.2f}' for p in rows]}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
