"""
Composition recipes for the three prototype shapes.

Every recipe builds its primitives through a ``PrimitiveVolumeFactory`` and
combines them through a ``Composition``, so the order base -> shell -> cuts
-> additions is enforced for all shapes alike.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from protoforge.composition import Composition
from protoforge.errors import ConstructionError, InvalidParameterError
from protoforge.kernel import Volume, VolumeKernel
from protoforge.lattice import SphericalBeamLatticeBuilder
from protoforge.mesh import BeamLattice
from protoforge.params import (ChassisParameters, FusorParameters, HabitatParameters,
                               ShapeParameters, parameters_type)
from protoforge.primitives import AXIS_X, AXIS_Z, PrimitiveVolumeFactory
from protoforge.profiles import Taper, default_taper, lerp, smooth_taper
from protoforge.revolution import RevolutionMeshBuilder

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

# Port name -> direction from the chamber center
FUSOR_PORTS: Tuple[Tuple[str, Vec3], ...] = (
    ('top_port', AXIS_Z),
    ('bottom_port', (0.0, 0.0, -1.0)),
    ('side_port', AXIS_X),
)

# Extra clearance of wheel well boxes over the wheel
WHEEL_WELL_CLEARANCE = 50.0
WHEEL_WELL_SCALE = 2.5


# -----------------
# Fusor
# -----------------

def fusor_grid_lattices(params: FusorParameters) -> Tuple[BeamLattice, BeamLattice]:
    """Beam lattices of the outer and inner grid electrodes."""
    outer = SphericalBeamLatticeBuilder(params.outer_grid_radius, params.outer_grid_beam,
                                        params.grid_latitudes, params.grid_meridians,
                                        params.grid_samples).build()
    inner = SphericalBeamLatticeBuilder(params.inner_grid_radius, params.inner_grid_beam,
                                        params.grid_latitudes, params.grid_meridians,
                                        params.grid_samples).build()
    return outer, inner


def build_fusor(params: FusorParameters, kernel: VolumeKernel) -> Volume:
    """
    Fusor vacuum chamber with three ports and two concentric grids.

    The chamber wall is cut by the port bores before the port tubes are
    added, and the tubes themselves are bored out before they join the
    chamber, so every port stays open into the cavity. The grids go in last.
    """
    factory = PrimitiveVolumeFactory(kernel, 'fusor')
    radius = params.chamber_outer_radius

    chamber = Composition(kernel, 'chamber', factory.sphere('chamber_outer', radius))
    chamber.shell(factory.sphere('chamber_inner', radius - params.chamber_wall_thickness))

    bores: List[Volume] = []
    tubes: List[Volume] = []
    for name, direction in FUSOR_PORTS:
        axis = np.asarray(direction)
        bores.append(factory.cylinder(f'{name}_bore', params.bore_radius, params.bore_length,
                                      base=axis * (radius - params.bore_inset), axis=direction))
        tubes.append(factory.cylinder(f'{name}_tube', params.port_radius, params.port_length,
                                      base=axis * (radius - params.port_inset), axis=direction))
    for bore in bores:
        chamber.cut(bore)

    ports = Composition(kernel, 'ports', tubes[0])
    for tube in tubes[1:]:
        ports.fuse(tube)
    for bore in bores:
        ports.cut(bore)
    chamber.add(ports.result())

    outer_grid, inner_grid = fusor_grid_lattices(params)
    chamber.add(factory.lattice('outer_grid', outer_grid))
    chamber.add(factory.lattice('inner_grid', inner_grid))
    return chamber.result()


# -----------------
# Habitat
# -----------------

def habitat_taper(params: HabitatParameters) -> Taper:
    if params.taper_control:
        return smooth_taper(params.taper_control)
    return default_taper


def habitat_dome_builder(params: HabitatParameters) -> RevolutionMeshBuilder:
    return RevolutionMeshBuilder(params.tiers, params.segments,
                                 stowed_radius=params.stowed_radius,
                                 deployed_radius=params.deployed_radius,
                                 stowed_height=params.stowed_height,
                                 deployed_height=params.deployed_height,
                                 deployment=params.deployment,
                                 taper=habitat_taper(params),
                                 zigzag=params.zigzag)


def doorway_box(params: HabitatParameters) -> Optional[Tuple[Vec3, Vec3]]:
    """
    Extents and center of the doorway cutout.

    The doorway sits on the +X side of the dome at the current base radius.
    Its top is kept at least one wall below the roof, so on a squat dome the
    door is shortened rather than cutting the roof open. Because the dome
    tapers inwards, the box is deepened when needed so that it still reaches
    the cavity at the top edge of the door.

    Returns:
        (extents, center), or None when the dome leaves no room for a door
    """
    base_radius = lerp(params.stowed_radius, params.deployed_radius, params.deployment)
    total_height = lerp(params.stowed_height, params.deployed_height, params.deployment)
    bottom = params.door_floor_offset
    top = min(bottom + params.door_height, total_height - params.wall_thickness)
    if top <= bottom:
        return None

    inner_rings = habitat_dome_builder(params).inset_rings(params.wall_thickness)
    cavity_radius = float(np.interp(top, [h for _, h in inner_rings], [r for r, _ in inner_rings]))
    # Measured at a facet midpoint
    cavity_radius *= math.cos(math.pi / params.segments)

    outer = base_radius + params.door_depth / 2.0
    inner = min(base_radius - params.door_depth / 2.0, cavity_radius - params.wall_thickness)
    height = top - bottom
    extents = (outer - inner, params.door_width, height)
    center = ((outer + inner) / 2.0, 0.0, bottom + height / 2.0)
    return extents, center


def build_habitat(params: HabitatParameters, kernel: VolumeKernel) -> Volume:
    """Hollow faceted dome with a doorway cut through the wall."""
    factory = PrimitiveVolumeFactory(kernel, 'habitat')
    builder = habitat_dome_builder(params)

    dome = Composition(kernel, 'habitat', factory.mesh('dome_outer', builder.build()))
    dome.shell(factory.mesh('dome_inner', builder.build_inset(params.wall_thickness)))
    door = doorway_box(params)
    if door is None:
        logger.warning("Habitat at deployment %.3f is too low for a doorway; door skipped",
                       params.deployment)
    else:
        extents, center = door
        dome.cut(factory.box('doorway', extents, center))
    return dome.result()


# -----------------
# Chassis
# -----------------

def shell_extents(extents: Vec3, wall: float) -> Vec3:
    """Extents of the cavity of a box shell with uniform wall thickness."""
    return tuple(e - 2.0 * wall for e in extents)


def wheel_well_boxes(params: ChassisParameters) -> List[Tuple[str, Vec3, Vec3]]:
    """(label, extents, center) of the four wheel wells, front axle first."""
    size = WHEEL_WELL_SCALE * params.wheel_radius
    extents = (size, params.wheel_width + WHEEL_WELL_CLEARANCE, size)
    axle_x = params.length / 2.0 - params.axle_inset
    z = -params.height / 2.0 + params.wheel_radius
    wells = []
    for axle, x in (('front', axle_x), ('rear', -axle_x)):
        for side, y in (('left', params.width / 2.0), ('right', -params.width / 2.0)):
            wells.append((f'{axle}_{side}_wheel_well', extents, (x, y, z)))
    return wells


def build_chassis(params: ChassisParameters, kernel: VolumeKernel) -> Volume:
    """Box tub with a cockpit opening and, optionally, four wheel wells."""
    factory = PrimitiveVolumeFactory(kernel, 'chassis')
    extents = (params.length, params.width, params.height)

    tub = Composition(kernel, 'chassis', factory.box('tub_outer', extents))
    tub.shell(factory.box('tub_inner', shell_extents(extents, params.wall_thickness)))
    tub.cut(factory.box('cockpit',
                        (params.cockpit_length, params.cockpit_width, params.cockpit_height),
                        (0.0, 0.0, params.cockpit_offset)))
    if params.wheel_wells:
        for label, well_extents, center in wheel_well_boxes(params):
            tub.cut(factory.box(label, well_extents, center))
    return tub.result()


# -----------------
# Registry
# -----------------

SHAPE_BUILDERS: Dict[str, Callable[..., Volume]] = {
    FusorParameters.shape: build_fusor,
    HabitatParameters.shape: build_habitat,
    ChassisParameters.shape: build_chassis,
}


def construct(shape: str, params: ShapeParameters, kernel: VolumeKernel) -> Volume:
    """
    Build one shape.

    Args:
        shape: Shape name
        params: Parameter record of the matching type
        kernel: Kernel performing the booleans

    Returns:
        Final solid

    Raises:
        InvalidParameterError: for an unknown shape or invalid parameters
        ConstructionError: when a sub-volume is degenerate
    """
    expected = parameters_type(shape)
    if not isinstance(params, expected):
        raise InvalidParameterError(f"{shape} expects {expected.__name__}, got {type(params).__name__}")
    params.validate()

    logger.info("Constructing %s", shape)
    try:
        volume = SHAPE_BUILDERS[shape](params, kernel)
    except ConstructionError as e:
        logger.error("Construction of %s aborted: %s", shape, e)
        raise
    logger.info("Constructed %s", shape)
    return volume
