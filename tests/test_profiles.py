import pytest

from protoforge.profiles import (default_taper, evaluate_tier, lerp, linear_taper,
                                 smooth_taper, tier_height, tier_radius)


def test_lerp_endpoints():
    assert lerp(30.0, 50.0, 0.0) == 30.0
    assert lerp(30.0, 50.0, 1.0) == 50.0
    assert lerp(30.0, 50.0, 0.5) == 40.0


def test_linear_taper_defaults():
    assert default_taper(0.0) == 1.0
    assert default_taper(1.0) == pytest.approx(0.4)
    assert linear_taper(0.0)(1.0) == 0.0


def test_tier_height_scales_with_deployment():
    assert tier_height(5, 5, 1.0, 5.0, 60.0) == pytest.approx(60.0)
    assert tier_height(5, 5, 0.0, 5.0, 60.0) == pytest.approx(5.0)
    assert tier_height(0, 5, 0.7, 5.0, 60.0) == 0.0


def test_tier_radius_uses_taper():
    assert tier_radius(0, 5, 1.0, 30.0, 50.0) == pytest.approx(50.0)
    assert tier_radius(5, 5, 1.0, 30.0, 50.0) == pytest.approx(20.0)
    assert tier_radius(5, 5, 0.0, 30.0, 50.0) == pytest.approx(12.0)


@pytest.mark.parametrize("deployment", [0.0, 0.3, 1.0])
def test_radius_non_increasing_with_tier(deployment):
    radii = [evaluate_tier(i, 8, deployment, 30.0, 50.0, 5.0, 60.0)[0] for i in range(9)]
    assert all(a >= b for a, b in zip(radii, radii[1:]))


def test_smooth_taper_passes_through_controls():
    taper = smooth_taper([1.0, 0.9, 0.7, 0.4])
    assert taper(0.0) == pytest.approx(1.0)
    assert taper(1.0) == pytest.approx(0.4)


def test_smooth_taper_downgrades_kind_for_two_points():
    taper = smooth_taper([1.0, 0.5])
    assert taper(0.5) == pytest.approx(0.75)


def test_smooth_taper_never_negative():
    taper = smooth_taper([1.0, 0.0])
    assert taper(2.0) == 0.0


def test_smooth_taper_needs_two_points():
    with pytest.raises(ValueError):
        smooth_taper([1.0])
