"""
Closed triangulated surfaces of revolution.

The surface is built from stacked rings of equal point count. Adjacent rings
are joined by quad strips split into two triangles, and both ends are closed
with a triangle fan around a center vertex. Odd rings can be rotated by half
a segment to give the faceted "origami" zigzag look.
"""

import logging
import math
from typing import List, Sequence, Tuple

import numpy as np

from protoforge.errors import InvalidParameterError
from protoforge.mesh import Mesh
from protoforge.profiles import Taper, default_taper, evaluate_tier

logger = logging.getLogger(__name__)

Ring = Tuple[float, float]  # (radius, height)

# Cross product below which two unit profile directions count as parallel
PARALLEL_TOLERANCE = 1e-9


class RevolutionMeshBuilder:
    """
    Builds a closed, capped dome mesh from a deployable profile.

    Tiers run from 0 (floor ring) to ``tier_count`` (roof ring) inclusive, so
    a builder emits ``tier_count + 1`` rings, ``tier_count`` side strips and
    two caps.
    """

    def __init__(self, tier_count: int, segment_count: int,
                 stowed_radius: float = 30.0, deployed_radius: float = 50.0,
                 stowed_height: float = 5.0, deployed_height: float = 60.0,
                 deployment: float = 1.0, taper: Taper = default_taper,
                 zigzag: bool = True):
        """
        Args:
            tier_count: Number of side strips, at least 1
            segment_count: Points per ring, at least 3
            stowed_radius: Base radius when stowed
            deployed_radius: Base radius when deployed
            stowed_height: Total height when stowed
            deployed_height: Total height when deployed
            deployment: Deployment fraction in [0, 1]
            taper: Radius factor as a function of normalized height
            zigzag: Rotate odd rings by half a segment step
        """
        if tier_count < 1:
            raise InvalidParameterError(f"tier_count must be at least 1, got {tier_count}")
        if segment_count < 3:
            raise InvalidParameterError(f"segment_count must be at least 3, got {segment_count}")
        for name, value in (('stowed_radius', stowed_radius), ('deployed_radius', deployed_radius),
                            ('stowed_height', stowed_height), ('deployed_height', deployed_height)):
            if value < 0:
                raise InvalidParameterError(f"{name} must not be negative, got {value}")
        if not 0.0 <= deployment <= 1.0:
            raise InvalidParameterError(f"deployment must be in [0, 1], got {deployment}")

        self.tier_count = tier_count
        self.segment_count = segment_count
        self.stowed_radius = stowed_radius
        self.deployed_radius = deployed_radius
        self.stowed_height = stowed_height
        self.deployed_height = deployed_height
        self.deployment = deployment
        self.taper = taper
        self.zigzag = zigzag

    def rings(self) -> List[Ring]:
        """Evaluate the (radius, height) of every tier from floor to roof."""
        return [
            evaluate_tier(i, self.tier_count, self.deployment,
                          self.stowed_radius, self.deployed_radius,
                          self.stowed_height, self.deployed_height, self.taper)
            for i in range(self.tier_count + 1)
        ]

    def inset_rings(self, wall: float) -> List[Ring]:
        """
        Rings of the inner surface of a shell with the given wall thickness.

        The (radius, height) profile is offset inwards: every side edge moves
        by ``wall`` along its inward normal, the floor moves up and the roof
        down, and each inner ring sits where two neighbouring offset lines
        meet. Facets between rings are not offset individually, so the wall
        is only exact in the profile plane.

        Args:
            wall: Wall thickness

        Returns:
            List of (radius, height) rings with the same tier count

        Raises:
            InvalidParameterError: if the wall leaves no interior
        """
        if wall <= 0:
            raise InvalidParameterError(f"wall thickness must be positive, got {wall}")
        rings = self.rings()
        floor = rings[0][1] + wall
        roof = rings[-1][1] - wall
        if roof <= floor:
            raise InvalidParameterError(
                f"wall thickness {wall} leaves no interior in a dome of height {rings[-1][1]:.3f}"
            )

        points = np.asarray(rings, dtype=np.float64)
        horizontal = np.array([1.0, 0.0])
        lines = [(np.array([0.0, floor]), horizontal)]
        for p, q in zip(points[:-1], points[1:]):
            d = (q - p) / np.linalg.norm(q - p)
            inward = np.array([-d[1], d[0]])
            lines.append((p + wall * inward, d))
        lines.append((np.array([0.0, roof]), horizontal))

        inner: List[Ring] = []
        edge_count = len(points) - 1
        k = 0
        while k <= edge_count:
            if not _parallel(lines[k][1], lines[k + 1][1]):
                inner.append(_intersect(lines[k], lines[k + 1]))
                k += 1
                continue
            # Collinear side edges have no mitre; rings k..end-1 are spread along
            # the shared offset line between rings k-1 and end
            end = k + 1
            while _parallel(lines[end][1], lines[end + 1][1]):
                end += 1
            start = np.array(inner[-1])
            stop = np.array(_intersect(lines[end], lines[end + 1]))
            if np.dot(stop - start, lines[k][1]) <= 0:
                raise InvalidParameterError(f"wall thickness {wall} collapses the inner profile")
            lengths = np.linalg.norm(np.diff(points[k - 1:end + 1], axis=0), axis=1)
            for fraction in np.cumsum(lengths)[:-1] / lengths.sum():
                p = start + fraction * (stop - start)
                inner.append((float(p[0]), float(p[1])))
            inner.append((float(stop[0]), float(stop[1])))
            k = end + 1

        if min(r for r, _ in inner) < 0:
            raise InvalidParameterError(f"wall thickness {wall} is too thick for the dome profile")
        if any(h1 <= h0 for (_, h0), (_, h1) in zip(inner[:-1], inner[1:])):
            raise InvalidParameterError(f"wall thickness {wall} folds the inner profile")
        return inner

    def build(self) -> Mesh:
        """Build the outer dome surface."""
        return self.build_rings(self.rings())

    def build_inset(self, wall: float) -> Mesh:
        """Build the inner dome surface for a shell of thickness ``wall``."""
        return self.build_rings(self.inset_rings(wall))

    def ring_offset(self, tier: int) -> float:
        """Angular offset of a tier; odd tiers are rotated by half a segment."""
        if self.zigzag and tier % 2 == 1:
            return math.pi / self.segment_count
        return 0.0

    def build_rings(self, rings: Sequence[Ring]) -> Mesh:
        """
        Triangulate explicit rings into a closed mesh.

        Args:
            rings: (radius, height) pairs from floor to roof, at least 2

        Returns:
            Closed Mesh with ``segment_count * (2 * (len(rings) - 1) + 2)`` triangles
        """
        if len(rings) < 2:
            raise InvalidParameterError(f"Need at least 2 rings, got {len(rings)}")

        n = self.segment_count
        vertices: List[Tuple[float, float, float]] = []
        triangles: List[Tuple[int, int, int]] = []
        ring_indices: List[List[int]] = []

        for tier, (radius, height) in enumerate(rings):
            if radius < 0:
                raise InvalidParameterError(f"Ring {tier} has negative radius {radius}")
            offset = self.ring_offset(tier)
            ring = []
            for j in range(n):
                phi = (2.0 * math.pi * j) / n + offset
                ring.append(len(vertices))
                vertices.append((radius * math.cos(phi), radius * math.sin(phi), height))
            ring_indices.append(ring)

        # Bottom cap, normals point down
        bottom_center = len(vertices)
        vertices.append((0.0, 0.0, rings[0][1]))
        bottom = ring_indices[0]
        for j in range(n):
            j_next = (j + 1) % n
            triangles.append((bottom_center, bottom[j_next], bottom[j]))

        for lower, upper in zip(ring_indices[:-1], ring_indices[1:]):
            triangles.extend(_strip(lower, upper))

        # Top cap, normals point up
        top_center = len(vertices)
        vertices.append((0.0, 0.0, rings[-1][1]))
        top = ring_indices[-1]
        for j in range(n):
            j_next = (j + 1) % n
            triangles.append((top_center, top[j], top[j_next]))

        logger.debug("Revolution mesh: %d rings x %d segments -> %d vertices, %d triangles",
                     len(rings), n, len(vertices), len(triangles))
        return Mesh(vertices=vertices, triangles=triangles)


def _strip(lower: Sequence[int], upper: Sequence[int]) -> List[Tuple[int, int, int]]:
    """Two counter-clockwise triangles per quad between two rings."""
    if len(lower) != len(upper):
        raise InvalidParameterError(
            f"Ring point counts differ ({len(lower)} vs {len(upper)}); rings must align"
        )
    n = len(lower)
    faces = []
    for j in range(n):
        j_next = (j + 1) % n
        # Quad: B_j, B_next, T_next, T_j
        faces.append((lower[j], lower[j_next], upper[j]))
        faces.append((lower[j_next], upper[j_next], upper[j]))
    return faces


def _intersect(a: Tuple[np.ndarray, np.ndarray], b: Tuple[np.ndarray, np.ndarray]) -> Ring:
    """Meeting point of two (point, direction) lines in the profile plane."""
    (pa, da), (pb, db) = a, b
    det = da[0] * db[1] - da[1] * db[0]
    diff = pb - pa
    s = (diff[0] * db[1] - diff[1] * db[0]) / det
    point = pa + s * da
    return float(point[0]), float(point[1])


def _parallel(da: np.ndarray, db: np.ndarray) -> bool:
    """True for unit directions that do not meet in a single point."""
    return abs(da[0] * db[1] - da[1] * db[0]) < PARALLEL_TOLERANCE
