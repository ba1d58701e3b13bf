"""
Volumetric kernel interface and its trimesh implementation.

The shape builders only talk to a kernel through the ``VolumeKernel``
protocol: turn meshes and beam lattices into volumes, combine volumes with
union/subtract, export STL and show a viewer. ``TrimeshKernel`` implements
it with watertight ``trimesh.Trimesh`` solids and the manifold3d boolean
engine.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Protocol, Tuple, Union

import numpy as np
import trimesh

from protoforge.errors import DegenerateGeometryError
from protoforge.mesh import Beam, BeamLattice, Mesh

logger = logging.getLogger(__name__)

BOOLEAN_ENGINE = "manifold"

# Geometry below these sizes is treated as empty
AREA_TOLERANCE = 1e-9
VOLUME_TOLERANCE = 1e-9
LENGTH_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class Volume:
    """
    Opaque solid handle produced by a kernel.

    Volumes are never modified in place; every boolean returns a new one.
    """

    mesh: trimesh.Trimesh
    label: str = ""

    @property
    def is_empty(self) -> bool:
        return len(self.mesh.faces) == 0

    @property
    def bounds(self) -> np.ndarray:
        """Axis aligned bounds as a (2, 3) array."""
        if self.is_empty:
            return np.zeros((2, 3))
        return np.asarray(self.mesh.bounds)

    @property
    def volume(self) -> float:
        if self.is_empty:
            return 0.0
        return float(self.mesh.volume)


class VolumeKernel(Protocol):
    """Capabilities the composition pipeline needs from a volumetric kernel."""

    def volume_from_mesh(self, mesh: Mesh, label: str = "") -> Volume:
        ...

    def volume_from_lattice(self, lattice: BeamLattice, label: str = "") -> Volume:
        ...

    def union(self, a: Volume, b: Volume) -> Volume:
        ...

    def subtract(self, a: Volume, b: Volume) -> Volume:
        ...

    def export_stl(self, volume: Volume, path: Union[str, Path]) -> Path:
        ...

    def visualize(self, volume: Volume) -> None:
        ...


def engines_available() -> set:
    """Return the set of trimesh boolean backends that are operational."""
    return set(trimesh.boolean.engines_available)


def manifold_available() -> bool:
    return BOOLEAN_ENGINE in engines_available()


class TrimeshKernel:
    """
    Kernel backed by trimesh solids and the manifold3d boolean engine.

    Args:
        engine: trimesh boolean engine name
        beam_sections: Number of facets around each rendered beam
        joint_subdivisions: Icosphere subdivisions of the spheres placed at beam joints
    """

    def __init__(self, engine: str = BOOLEAN_ENGINE, beam_sections: int = 8,
                 joint_subdivisions: int = 1):
        self.engine = engine
        self.beam_sections = beam_sections
        self.joint_subdivisions = joint_subdivisions

    # -----------------
    # Conversions
    # -----------------

    def volume_from_mesh(self, mesh: Mesh, label: str = "") -> Volume:
        """
        Convert a closed mesh into a volume.

        Raises:
            DegenerateGeometryError: if the mesh has no area, open boundaries
                or does not enclose a positive volume
        """
        if mesh.triangle_count == 0 or mesh.area() <= AREA_TOLERANCE:
            raise DegenerateGeometryError(f"mesh '{label}' has zero total area")

        tm = trimesh.Trimesh(vertices=np.array(mesh.vertices), faces=np.array(mesh.triangles),
                             process=False)
        if not tm.is_watertight:
            raise DegenerateGeometryError(f"mesh '{label}' is not closed")
        if tm.volume <= VOLUME_TOLERANCE:
            raise DegenerateGeometryError(
                f"mesh '{label}' encloses no positive volume (inverted winding or flat)"
            )
        logger.debug("Volume '%s' from mesh: %d faces, volume %.3f", label, len(tm.faces), tm.volume)
        return Volume(mesh=tm, label=label)

    def volume_from_lattice(self, lattice: BeamLattice, label: str = "") -> Volume:
        """
        Render a beam lattice as one solid.

        Each beam becomes a cylinder (or a frustum when tapered) and every
        beam endpoint gets a sphere so that joints between beams are filled.
        All parts are merged in a single boolean union.

        Raises:
            DegenerateGeometryError: for an empty lattice or a zero-length beam
        """
        if len(lattice) == 0:
            raise DegenerateGeometryError(f"lattice '{label}' has no beams")

        parts: List[trimesh.Trimesh] = []
        joints: Dict[Tuple[float, float, float], Tuple[np.ndarray, float]] = {}
        for index, beam in enumerate(lattice):
            if beam.length <= LENGTH_TOLERANCE:
                raise DegenerateGeometryError(f"lattice '{label}' beam {index} has zero length")
            if beam.start_thickness <= 0 or beam.end_thickness <= 0:
                raise DegenerateGeometryError(f"lattice '{label}' beam {index} has no thickness")
            parts.append(self._beam_mesh(beam))
            for point, radius in ((beam.start, beam.start_thickness), (beam.end, beam.end_thickness)):
                key = (round(point[0], 9), round(point[1], 9), round(point[2], 9))
                _, known = joints.get(key, (None, 0.0))
                joints[key] = (np.asarray(point, dtype=np.float64), max(known, radius))

        for point, radius in joints.values():
            sphere = trimesh.creation.icosphere(subdivisions=self.joint_subdivisions, radius=radius)
            sphere.apply_translation(point)
            parts.append(sphere)

        solid = trimesh.boolean.union(parts, engine=self.engine, check_volume=False)
        if solid is None or len(solid.faces) == 0:
            raise DegenerateGeometryError(f"lattice '{label}' rendered to an empty solid")
        logger.debug("Volume '%s' from lattice: %d beams, %d joints", label, len(lattice), len(joints))
        return Volume(mesh=solid, label=label)

    def _beam_mesh(self, beam: Beam) -> trimesh.Trimesh:
        start = np.asarray(beam.start, dtype=np.float64)
        end = np.asarray(beam.end, dtype=np.float64)
        if not beam.tapered:
            return trimesh.creation.cylinder(radius=beam.start_thickness,
                                             segment=np.vstack([start, end]),
                                             sections=self.beam_sections)

        # Frustum along +Z, then aligned with the beam direction
        length = beam.length
        profile = np.array([
            [0.0, 0.0],
            [beam.start_thickness, 0.0],
            [beam.end_thickness, length],
            [0.0, length],
        ])
        frustum = trimesh.creation.revolve(profile, sections=self.beam_sections)
        transform = trimesh.geometry.align_vectors([0.0, 0.0, 1.0], (end - start) / length)
        transform[:3, 3] = start
        frustum.apply_transform(transform)
        return frustum

    # -----------------
    # Booleans
    # -----------------

    def union(self, a: Volume, b: Volume) -> Volume:
        if a.is_empty:
            return Volume(mesh=b.mesh.copy(), label=b.label)
        if b.is_empty:
            return Volume(mesh=a.mesh.copy(), label=a.label)
        result = trimesh.boolean.union([a.mesh, b.mesh], engine=self.engine, check_volume=False)
        return Volume(mesh=result, label=f"({a.label} + {b.label})")

    def subtract(self, a: Volume, b: Volume) -> Volume:
        if a.is_empty or b.is_empty:
            return Volume(mesh=a.mesh.copy(), label=a.label)
        result = trimesh.boolean.difference([a.mesh, b.mesh], engine=self.engine, check_volume=False)
        return Volume(mesh=result, label=f"({a.label} - {b.label})")

    # -----------------
    # Output
    # -----------------

    def export_stl(self, volume: Volume, path: Union[str, Path]) -> Path:
        """Write the volume's surface as a binary STL file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        volume.mesh.export(str(path), file_type='stl')
        logger.info("Exported %s (%d faces)", path, len(volume.mesh.faces))
        return path

    def visualize(self, volume: Volume) -> None:
        """Open a blocking viewer window."""
        volume.mesh.show()
