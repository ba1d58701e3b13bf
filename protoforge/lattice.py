"""
Spherical wire-frame grids built from latitude rings and meridians.

Latitude rings are placed strictly between the poles so none of them
collapses to a point. Meridians are full great circles; they cross near the
poles but are not welded there. The kernel's lattice renderer fills the
crossings, so the poles carry no explicit shared vertex.
"""

import logging
import math
from typing import List

import numpy as np

from protoforge.errors import InvalidParameterError
from protoforge.mesh import Beam, BeamLattice, beams_from_polyline

logger = logging.getLogger(__name__)

DEFAULT_LATITUDES = 6
DEFAULT_MERIDIANS = 8
DEFAULT_SAMPLES = 60


class SphericalBeamLatticeBuilder:
    """
    Generates the beam lattice of a spherical grid electrode.

    The lattice has ``latitudes * samples + meridians * samples`` beams, all
    with the same thickness (beam radius).
    """

    def __init__(self, radius: float, thickness: float,
                 latitudes: int = DEFAULT_LATITUDES,
                 meridians: int = DEFAULT_MERIDIANS,
                 samples: int = DEFAULT_SAMPLES,
                 center=(0.0, 0.0, 0.0)):
        if radius <= 0:
            raise InvalidParameterError(f"Lattice radius must be positive, got {radius}")
        if thickness <= 0:
            raise InvalidParameterError(f"Beam thickness must be positive, got {thickness}")
        if latitudes < 0 or meridians < 0:
            raise InvalidParameterError("Latitude and meridian counts must not be negative")
        if latitudes + meridians == 0:
            raise InvalidParameterError("Lattice needs at least one latitude or meridian")
        if samples < 3:
            raise InvalidParameterError(f"samples must be at least 3, got {samples}")

        self.radius = radius
        self.thickness = thickness
        self.latitudes = latitudes
        self.meridians = meridians
        self.samples = samples
        self.center = np.asarray(center, dtype=np.float64)

    def latitude_points(self, k: int) -> np.ndarray:
        """
        Sample latitude ring ``k`` as ``samples + 1`` points, first point repeated.

        Args:
            k: Ring index in [0, latitudes)

        Returns:
            Array of shape (samples + 1, 3)
        """
        theta = (math.pi * (k + 1)) / (self.latitudes + 1)
        ring_radius = self.radius * math.sin(theta)
        ring_z = self.radius * math.cos(theta)

        phi = (2.0 * math.pi * np.arange(self.samples + 1)) / self.samples
        points = np.column_stack([
            ring_radius * np.cos(phi),
            ring_radius * np.sin(phi),
            np.full(self.samples + 1, ring_z),
        ])
        # Close the loop exactly
        points[-1] = points[0]
        return points + self.center

    def meridian_points(self, m: int) -> np.ndarray:
        """
        Sample meridian ``m`` as a full great circle of ``samples + 1`` points.

        The circle is built in the XZ plane and rotated about Z by the
        meridian azimuth.

        Args:
            m: Meridian index in [0, meridians)

        Returns:
            Array of shape (samples + 1, 3)
        """
        phi = (2.0 * math.pi * m) / self.meridians
        theta = (2.0 * math.pi * np.arange(self.samples + 1)) / self.samples
        x = self.radius * np.sin(theta)
        z = self.radius * np.cos(theta)

        cos_p = math.cos(phi)
        sin_p = math.sin(phi)
        points = np.column_stack([x * cos_p, x * sin_p, z])
        points[-1] = points[0]
        return points + self.center

    def build(self) -> BeamLattice:
        """Build the full latitude and meridian lattice."""
        beams: List[Beam] = []
        for k in range(self.latitudes):
            beams.extend(beams_from_polyline(self.latitude_points(k), self.thickness))
        for m in range(self.meridians):
            beams.extend(beams_from_polyline(self.meridian_points(m), self.thickness))

        logger.debug("Spherical lattice r=%.3f: %d latitudes, %d meridians, %d samples -> %d beams",
                     self.radius, self.latitudes, self.meridians, self.samples, len(beams))
        return BeamLattice(beams=tuple(beams))
