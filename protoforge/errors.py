"""
Error types raised while generating prototype geometry.

Every error carries a short machine-readable code and a message, so the
command line can report failures without a stack trace.
"""

from typing import Optional


class ProtoforgeError(Exception):
    """Base class for all geometry generation errors."""

    code = "protoforge_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidParameterError(ProtoforgeError, ValueError):
    """A design parameter is out of range; raised before any geometry is emitted."""

    code = "invalid_parameter"


class DegenerateGeometryError(ProtoforgeError):
    """The kernel cannot turn a mesh or lattice into a volume."""

    code = "degenerate_geometry"


class CompositionOrderError(ProtoforgeError):
    """A boolean step was requested out of the built/shelled/cut/composed order."""

    code = "composition_order"


class ConstructionError(ProtoforgeError):
    """
    A shape could not be constructed because one of its sub-volumes failed.

    Attributes:
        shape: Name of the shape being constructed
        subvolume: Label of the sub-volume that failed
    """

    code = "construction_failed"

    def __init__(self, shape: str, subvolume: str, reason: str):
        self.shape = shape
        self.subvolume = subvolume
        super().__init__(f"shape '{shape}' failed at sub-volume '{subvolume}': {reason}")
