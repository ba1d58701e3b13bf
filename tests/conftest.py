import pytest
import trimesh

from protoforge.errors import DegenerateGeometryError
from protoforge.kernel import Volume


class RecordingKernel:
    """Kernel double that records every call and performs no geometry."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def _volume(self, label):
        return Volume(mesh=trimesh.Trimesh(), label=label)

    def volume_from_mesh(self, mesh, label=""):
        self.calls.append(("mesh", label))
        if label == self.fail_on:
            raise DegenerateGeometryError(f"mesh '{label}' is not closed")
        return self._volume(label)

    def volume_from_lattice(self, lattice, label=""):
        self.calls.append(("lattice", label))
        return self._volume(label)

    def union(self, a, b):
        self.calls.append(("union", a.label, b.label))
        return self._volume(a.label)

    def subtract(self, a, b):
        self.calls.append(("subtract", a.label, b.label))
        return self._volume(a.label)

    def export_stl(self, volume, path):
        self.calls.append(("export", volume.label, str(path)))
        return path

    def visualize(self, volume):
        self.calls.append(("visualize", volume.label))

    def booleans(self):
        return [c for c in self.calls if c[0] in ("union", "subtract")]


@pytest.fixture
def recording_kernel():
    return RecordingKernel()


@pytest.fixture
def failing_kernel():
    """Return a factory for kernels that reject the mesh with the given label."""
    return lambda label: RecordingKernel(fail_on=label)
