"""Parametric prototype geometry: revolution meshes, beam lattices and ordered boolean composition."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("protoforge")
except PackageNotFoundError:
    __version__ = "unknown"
