import math

import pytest

from protoforge.errors import ConstructionError, DegenerateGeometryError, InvalidParameterError
from protoforge.params import ChassisParameters, FusorParameters, HabitatParameters
from protoforge.shapes import (construct, doorway_box, fusor_grid_lattices, habitat_dome_builder,
                               shell_extents, wheel_well_boxes)


def test_fusor_composition_order(recording_kernel):
    construct("fusor", FusorParameters(), recording_kernel)
    assert recording_kernel.booleans() == [
        ("subtract", "chamber_outer", "chamber_inner"),
        ("subtract", "chamber_outer", "top_port_bore"),
        ("subtract", "chamber_outer", "bottom_port_bore"),
        ("subtract", "chamber_outer", "side_port_bore"),
        ("union", "top_port_tube", "bottom_port_tube"),
        ("union", "top_port_tube", "side_port_tube"),
        ("subtract", "top_port_tube", "top_port_bore"),
        ("subtract", "top_port_tube", "bottom_port_bore"),
        ("subtract", "top_port_tube", "side_port_bore"),
        ("union", "chamber_outer", "top_port_tube"),
        ("union", "chamber_outer", "outer_grid"),
        ("union", "chamber_outer", "inner_grid"),
    ]
    lattices = [c[1] for c in recording_kernel.calls if c[0] == "lattice"]
    assert lattices == ["outer_grid", "inner_grid"]


def test_fusor_grids():
    outer, inner = fusor_grid_lattices(FusorParameters())
    assert len(outer) == len(inner) == 840
    assert outer.bounds()[1][2] == pytest.approx(50.0)
    assert inner.bounds()[1][2] == pytest.approx(15.0)


def test_habitat_composition_order(recording_kernel):
    construct("habitat", HabitatParameters(), recording_kernel)
    assert recording_kernel.booleans() == [
        ("subtract", "dome_outer", "dome_inner"),
        ("subtract", "dome_outer", "doorway"),
    ]


def test_habitat_dome_deterministic():
    params = HabitatParameters(deployment=0.6, taper_control=(1.0, 0.95, 0.7, 0.4))
    a = habitat_dome_builder(params).build()
    b = habitat_dome_builder(params).build()
    assert a.same_as(b)
    assert a.is_closed()


def test_doorway_reaches_cavity():
    params = HabitatParameters()
    (depth, width, height), (cx, cy, cz) = doorway_box(params)
    assert (width, height) == (15.0, 25.0)
    assert cz == pytest.approx(2.0 + 12.5)
    assert cy == 0.0
    outer_face = cx + depth / 2
    inner_face = cx - depth / 2
    assert outer_face == pytest.approx(50.0 + 10.0)
    # Inner cavity radius at the door top (z = 27) on a facet midpoint
    inner_at_top = (50.0 * (1 - 0.6 * 27 / 60) - 2.0) * math.cos(math.pi / 12)
    assert inner_face < inner_at_top


def test_failed_subvolume_aborts_shape(failing_kernel):
    kernel = failing_kernel("dome_inner")
    with pytest.raises(ConstructionError) as info:
        construct("habitat", HabitatParameters(), kernel)
    assert info.value.shape == "habitat"
    assert info.value.subvolume == "dome_inner"
    assert isinstance(info.value.__cause__, DegenerateGeometryError)
    # Nothing was combined after the failure
    assert kernel.booleans() == []


def test_chassis_composition_order(recording_kernel):
    construct("chassis", ChassisParameters(), recording_kernel)
    assert recording_kernel.booleans() == [
        ("subtract", "tub_outer", "tub_inner"),
        ("subtract", "tub_outer", "cockpit"),
        ("subtract", "tub_outer", "front_left_wheel_well"),
        ("subtract", "tub_outer", "front_right_wheel_well"),
        ("subtract", "tub_outer", "rear_left_wheel_well"),
        ("subtract", "tub_outer", "rear_right_wheel_well"),
    ]


def test_chassis_without_wheel_wells(recording_kernel):
    construct("chassis", ChassisParameters(wheel_wells=False), recording_kernel)
    assert len(recording_kernel.booleans()) == 2


def test_shell_extents():
    assert shell_extents((4000.0, 1800.0, 1200.0), 50.0) == (3900.0, 1700.0, 1100.0)


def test_wheel_well_placement():
    wells = wheel_well_boxes(ChassisParameters())
    assert len(wells) == 4
    label, extents, center = wells[0]
    assert label == "front_left_wheel_well"
    assert extents == (875.0, 300.0, 875.0)
    assert center == (1200.0, 900.0, -250.0)
    assert wells[3][2] == (-1200.0, -900.0, -250.0)


def test_construct_rejects_unknown_shape(recording_kernel):
    with pytest.raises(InvalidParameterError):
        construct("rocket", FusorParameters(), recording_kernel)


def test_construct_rejects_mismatched_parameters(recording_kernel):
    with pytest.raises(InvalidParameterError):
        construct("fusor", ChassisParameters(), recording_kernel)


def test_construct_validates_before_building(recording_kernel):
    with pytest.raises(InvalidParameterError):
        construct("habitat", HabitatParameters(segments=2), recording_kernel)
    assert recording_kernel.calls == []


@pytest.mark.parametrize("deployment", [0.0, 0.05, 0.1, 0.15, 0.2, 0.5])
def test_habitat_builds_across_deployment(recording_kernel, deployment):
    construct("habitat", HabitatParameters(deployment=deployment), recording_kernel)
    assert [c[0] for c in recording_kernel.booleans()] == ["subtract", "subtract"]


def test_stowed_doorway_stays_below_roof():
    params = HabitatParameters(deployment=0.0)
    (depth, width, height), (cx, cy, cz) = doorway_box(params)
    # Stowed dome is 5 high; the door stops one wall below the roof
    assert height == pytest.approx(1.0)
    assert cz + height / 2 == pytest.approx(5.0 - 2.0)
    inner_rings = habitat_dome_builder(params).inset_rings(2.0)
    assert cx - depth / 2 < inner_rings[-1][0] * math.cos(math.pi / 12)


def test_doorway_skipped_without_headroom(recording_kernel):
    params = HabitatParameters(deployment=0.0, door_floor_offset=3.0)
    assert doorway_box(params) is None
    construct("habitat", params, recording_kernel)
    assert recording_kernel.booleans() == [("subtract", "dome_outer", "dome_inner")]
