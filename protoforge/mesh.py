"""
Geometry value types shared by the builders and the kernel.

A Mesh is an indexed triangle list with counter-clockwise winding seen from
outside the solid. A BeamLattice is a loose collection of thick line
segments. Both are immutable once built.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np
import trimesh

Vec3 = Tuple[float, float, float]
Edge = Tuple[int, int]


@dataclass(frozen=True, eq=False)
class Mesh:
    """
    Immutable triangulated surface.

    Attributes:
        vertices: Array of shape (N, 3) with vertex positions
        triangles: Array of shape (M, 3) with vertex indices per triangle
    """

    vertices: np.ndarray
    triangles: np.ndarray

    def __post_init__(self):
        vertices = np.array(self.vertices, dtype=np.float64).reshape(-1, 3)
        triangles = np.array(self.triangles, dtype=np.int64).reshape(-1, 3)
        if triangles.size and (triangles.min() < 0 or triangles.max() >= len(vertices)):
            raise ValueError("Triangle index out of range")
        vertices.setflags(write=False)
        triangles.setflags(write=False)
        object.__setattr__(self, 'vertices', vertices)
        object.__setattr__(self, 'triangles', triangles)

    @classmethod
    def from_trimesh(cls, tm: trimesh.Trimesh) -> 'Mesh':
        """Copy the vertices and faces of a trimesh object."""
        return cls(vertices=np.asarray(tm.vertices), triangles=np.asarray(tm.faces))

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    def edge_counts(self) -> Dict[Edge, int]:
        """Count how many triangles use each undirected edge."""
        edges = Counter()
        for a, b, c in self.triangles.tolist():
            for u, v in ((a, b), (b, c), (c, a)):
                edges[(u, v) if u < v else (v, u)] += 1
        return dict(edges)

    def boundary_edges(self) -> List[Edge]:
        """Edges that are not shared by exactly two triangles."""
        return sorted(edge for edge, count in self.edge_counts().items() if count != 2)

    def is_closed(self) -> bool:
        """True when every edge is shared by exactly two oppositely wound triangles."""
        if self.triangle_count == 0:
            return False
        directed = Counter()
        for a, b, c in self.triangles.tolist():
            for u, v in ((a, b), (b, c), (c, a)):
                directed[(u, v)] += 1
        for (u, v), count in directed.items():
            if count != 1 or directed.get((v, u)) != 1:
                return False
        return True

    def area(self) -> float:
        """Total surface area."""
        if self.triangle_count == 0:
            return 0.0
        tri = self.vertices[self.triangles]
        cross = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
        return float(0.5 * np.linalg.norm(cross, axis=1).sum())

    def same_as(self, other: 'Mesh') -> bool:
        """Bit-for-bit comparison of vertex and triangle arrays."""
        return (np.array_equal(self.vertices, other.vertices)
                and np.array_equal(self.triangles, other.triangles))


@dataclass(frozen=True)
class Beam:
    """
    A thick line segment.

    Thickness values are beam radii at the start and end points, so a beam
    with different values is a tapered frustum.
    """

    start: Vec3
    end: Vec3
    start_thickness: float
    end_thickness: float

    @property
    def length(self) -> float:
        return float(np.linalg.norm(np.subtract(self.end, self.start)))

    @property
    def tapered(self) -> bool:
        return self.start_thickness != self.end_thickness


@dataclass(frozen=True)
class BeamLattice:
    """An immutable collection of beams with no explicit topology."""

    beams: Tuple[Beam, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.beams)

    def __iter__(self) -> Iterator[Beam]:
        return iter(self.beams)

    def bounds(self) -> np.ndarray:
        """Axis aligned bounds of the beam centerlines as a (2, 3) array."""
        if not self.beams:
            return np.zeros((2, 3))
        points = np.array([b.start for b in self.beams] + [b.end for b in self.beams])
        return np.vstack([points.min(axis=0), points.max(axis=0)])


def beams_from_polyline(points: Sequence[Vec3], thickness: float) -> List[Beam]:
    """Connect consecutive points with uniform-thickness beams."""
    return [Beam(_as_vec3(points[k]), _as_vec3(points[k + 1]), thickness, thickness)
            for k in range(len(points) - 1)]


def _as_vec3(point: Sequence[float]) -> Vec3:
    return (float(point[0]), float(point[1]), float(point[2]))
