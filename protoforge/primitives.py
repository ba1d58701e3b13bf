"""
Named, positioned primitive volumes for one shape construction.

The factory turns boxes, spheres, cylinders, revolution meshes and beam
lattices into kernel volumes. A degenerate sub-volume aborts the shape with
a ``ConstructionError`` that names both the shape and the sub-volume.
"""

import logging
from typing import Sequence

import numpy as np
import trimesh

from protoforge.errors import ConstructionError, DegenerateGeometryError, InvalidParameterError
from protoforge.kernel import Volume, VolumeKernel
from protoforge.mesh import BeamLattice, Mesh

logger = logging.getLogger(__name__)

# Tessellation of curved primitives
SPHERE_SUBDIVISIONS = 3
CYLINDER_SECTIONS = 48

AXIS_X = (1.0, 0.0, 0.0)
AXIS_Y = (0.0, 1.0, 0.0)
AXIS_Z = (0.0, 0.0, 1.0)


class PrimitiveVolumeFactory:
    """
    Builds labelled volumes for the shape named ``shape``.

    Args:
        kernel: Volumetric kernel used for conversion
        shape: Name of the shape under construction, used in error reports
    """

    def __init__(self, kernel: VolumeKernel, shape: str):
        self.kernel = kernel
        self.shape = shape

    def box(self, label: str, extents: Sequence[float],
            center: Sequence[float] = (0.0, 0.0, 0.0)) -> Volume:
        """Axis aligned box of the given extents centered at ``center``."""
        if len(extents) != 3 or min(extents) <= 0:
            raise InvalidParameterError(f"Box '{label}' needs three positive extents, got {extents}")
        tm = trimesh.creation.box(extents=extents,
                                  transform=trimesh.transformations.translation_matrix(center))
        return self.mesh(label, Mesh.from_trimesh(tm))

    def sphere(self, label: str, radius: float,
               center: Sequence[float] = (0.0, 0.0, 0.0),
               subdivisions: int = SPHERE_SUBDIVISIONS) -> Volume:
        """Geodesic sphere centered at ``center``."""
        if radius <= 0:
            raise InvalidParameterError(f"Sphere '{label}' radius must be positive, got {radius}")
        tm = trimesh.creation.icosphere(subdivisions=subdivisions, radius=radius)
        tm.apply_translation(center)
        return self.mesh(label, Mesh.from_trimesh(tm))

    def cylinder(self, label: str, radius: float, length: float,
                 base: Sequence[float] = (0.0, 0.0, 0.0),
                 axis: Sequence[float] = AXIS_Z,
                 sections: int = CYLINDER_SECTIONS) -> Volume:
        """
        Cylinder starting at ``base`` and extending ``length`` along ``axis``.

        Args:
            label: Sub-volume name
            radius: Cylinder radius
            length: Cylinder length
            base: Center of the start cap
            axis: Direction of the cylinder axis (normalized internally)
            sections: Facets around the circumference

        Returns:
            Volume
        """
        if radius <= 0 or length <= 0:
            raise InvalidParameterError(
                f"Cylinder '{label}' needs positive radius and length, got {radius}, {length}"
            )
        direction = np.asarray(axis, dtype=np.float64)
        norm = np.linalg.norm(direction)
        if norm == 0:
            raise InvalidParameterError(f"Cylinder '{label}' axis must not be zero")
        start = np.asarray(base, dtype=np.float64)
        end = start + direction / norm * length
        tm = trimesh.creation.cylinder(radius=radius, segment=np.vstack([start, end]),
                                       sections=sections)
        return self.mesh(label, Mesh.from_trimesh(tm))

    def mesh(self, label: str, mesh: Mesh) -> Volume:
        """Convert an already built mesh (e.g. a revolution surface)."""
        logger.debug("[%s] building sub-volume '%s' from mesh (%d triangles)",
                     self.shape, label, mesh.triangle_count)
        try:
            return self.kernel.volume_from_mesh(mesh, label)
        except DegenerateGeometryError as e:
            raise ConstructionError(self.shape, label, e.message) from e

    def lattice(self, label: str, lattice: BeamLattice) -> Volume:
        """Render a beam lattice."""
        logger.debug("[%s] building sub-volume '%s' from lattice (%d beams)",
                     self.shape, label, len(lattice))
        try:
            return self.kernel.volume_from_lattice(lattice, label)
        except DegenerateGeometryError as e:
            raise ConstructionError(self.shape, label, e.message) from e
