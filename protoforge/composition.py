"""
Ordered boolean composition of one solid.

A ``Composition`` walks a solid through four stages:

    BUILT     base solid, optionally fused from several primitives
    SHELLED   an inner solid has been subtracted to leave a wall
    CUT       port, doorway or cockpit cutouts have been subtracted
    COMPOSED  auxiliary material has been unioned in

Stages only move forward. A cut requested after material was added would
also remove part of the added material, so it is rejected with
``CompositionOrderError`` before the kernel is called.
"""

import enum
import logging
from typing import List, Tuple

from protoforge.errors import CompositionOrderError
from protoforge.kernel import Volume, VolumeKernel

logger = logging.getLogger(__name__)


class Stage(enum.IntEnum):
    BUILT = 0
    SHELLED = 1
    CUT = 2
    COMPOSED = 3


class Composition:
    """
    Boolean history of a single solid.

    Args:
        kernel: Kernel performing the booleans
        name: Name of the solid, used in logs and errors
        base: Initial solid
    """

    def __init__(self, kernel: VolumeKernel, name: str, base: Volume):
        self.kernel = kernel
        self.name = name
        self.stage = Stage.BUILT
        self.steps: List[Tuple[str, str]] = [("base", base.label)]
        self._volume = base

    def _check(self, operation: str, allowed: Tuple[Stage, ...]) -> None:
        if self.stage not in allowed:
            raise CompositionOrderError(
                f"'{self.name}': cannot {operation} in stage {self.stage.name} "
                f"(allowed from {', '.join(s.name for s in allowed)})"
            )

    def fuse(self, part: Volume) -> 'Composition':
        """Union another primitive into the base solid before any subtraction."""
        self._check("fuse", (Stage.BUILT,))
        self._volume = self.kernel.union(self._volume, part)
        self._record("fuse", part, Stage.BUILT)
        return self

    def shell(self, inner: Volume) -> 'Composition':
        """Subtract an inset copy of the solid to leave a hollow wall."""
        self._check("shell", (Stage.BUILT,))
        self._volume = self.kernel.subtract(self._volume, inner)
        self._record("shell", inner, Stage.SHELLED)
        return self

    def cut(self, cutout: Volume) -> 'Composition':
        """Subtract a positioned cutout."""
        self._check("cut", (Stage.BUILT, Stage.SHELLED, Stage.CUT))
        self._volume = self.kernel.subtract(self._volume, cutout)
        self._record("cut", cutout, Stage.CUT)
        return self

    def add(self, part: Volume) -> 'Composition':
        """Union auxiliary material after all cutouts."""
        self._check("add", tuple(Stage))
        self._volume = self.kernel.union(self._volume, part)
        self._record("add", part, Stage.COMPOSED)
        return self

    def _record(self, operation: str, operand: Volume, stage: Stage) -> None:
        self.stage = max(self.stage, stage)
        self.steps.append((operation, operand.label))
        logger.debug("'%s' %s '%s' -> stage %s", self.name, operation, operand.label, self.stage.name)

    def result(self) -> Volume:
        """Final solid; the composition keeps no other intermediate volumes."""
        return self._volume
