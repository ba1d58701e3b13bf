import numpy as np
import pytest
import trimesh

from protoforge.errors import DegenerateGeometryError
from protoforge.kernel import TrimeshKernel, engines_available, manifold_available
from protoforge.lattice import SphericalBeamLatticeBuilder
from protoforge.mesh import Beam, BeamLattice, Mesh
from protoforge.params import ChassisParameters, FusorParameters, HabitatParameters
from protoforge.primitives import PrimitiveVolumeFactory
from protoforge.shapes import construct

requires_manifold = pytest.mark.skipif(not manifold_available(),
                                       reason="manifold3d boolean backend not available")


def _box(kernel, label, extents, center=(0.0, 0.0, 0.0)):
    return PrimitiveVolumeFactory(kernel, 'test').box(label, extents, center)


@requires_manifold
def test_manifold_engine_listed():
    assert 'manifold' in engines_available()


def test_closed_mesh_becomes_volume():
    kernel = TrimeshKernel()
    volume = _box(kernel, 'cube', (2.0, 3.0, 4.0))
    assert volume.label == 'cube'
    assert volume.volume == pytest.approx(24.0)


def test_open_mesh_rejected():
    mesh = Mesh(vertices=[(0, 0, 0), (1, 0, 0), (0, 1, 0)], triangles=[(0, 1, 2)])
    with pytest.raises(DegenerateGeometryError):
        TrimeshKernel().volume_from_mesh(mesh, 'sheet')


def test_inverted_mesh_rejected():
    box = trimesh.creation.box(extents=(1, 1, 1))
    mesh = Mesh(vertices=box.vertices, triangles=np.asarray(box.faces)[:, ::-1])
    with pytest.raises(DegenerateGeometryError):
        TrimeshKernel().volume_from_mesh(mesh, 'inside_out')


def test_zero_area_mesh_rejected():
    # Closed tetrahedron connectivity with every vertex at the same point
    mesh = Mesh(vertices=[(1.0, 1.0, 1.0)] * 4,
                triangles=[(0, 2, 1), (0, 1, 3), (1, 2, 3), (0, 3, 2)])
    assert mesh.is_closed()
    with pytest.raises(DegenerateGeometryError, match="zero total area"):
        TrimeshKernel().volume_from_mesh(mesh, "point")


@requires_manifold
def test_box_shell_keeps_outer_bounds():
    kernel = TrimeshKernel()
    outer = _box(kernel, 'outer', (4000.0, 1800.0, 1200.0))
    inner = _box(kernel, 'inner', (3900.0, 1700.0, 1100.0))
    shell = kernel.subtract(outer, inner)
    np.testing.assert_allclose(shell.bounds, [[-2000, -900, -600], [2000, 900, 600]])
    assert shell.volume == pytest.approx(4000 * 1800 * 1200 - 3900 * 1700 * 1100, rel=1e-6)


@requires_manifold
def test_cutout_outside_is_noop():
    kernel = TrimeshKernel()
    part = _box(kernel, 'part', (10.0, 10.0, 10.0))
    far = _box(kernel, 'far', (1.0, 1.0, 1.0), center=(100.0, 0.0, 0.0))
    result = kernel.subtract(part, far)
    assert result.volume == pytest.approx(part.volume)
    np.testing.assert_allclose(result.bounds, part.bounds)


@requires_manifold
def test_union_of_disjoint_parts():
    kernel = TrimeshKernel()
    a = _box(kernel, 'a', (1.0, 1.0, 1.0))
    b = _box(kernel, 'b', (1.0, 1.0, 1.0), center=(5.0, 0.0, 0.0))
    assert kernel.union(a, b).volume == pytest.approx(2.0)


@requires_manifold
def test_lattice_renders_watertight_solid():
    lattice = SphericalBeamLatticeBuilder(10.0, 0.5, latitudes=1, meridians=2, samples=12).build()
    volume = TrimeshKernel().volume_from_lattice(lattice, 'grid')
    assert volume.mesh.is_watertight
    assert volume.volume > 0
    assert volume.bounds[1][2] == pytest.approx(10.5, abs=0.2)


@requires_manifold
def test_tapered_beam():
    lattice = BeamLattice(beams=(Beam((0, 0, 0), (0, 0, 10), 1.0, 0.5),))
    volume = TrimeshKernel(beam_sections=16).volume_from_lattice(lattice, 'strut')
    # Frustum r=1..0.5 over 10 (about 18.3) plus end caps
    assert 10.0 < volume.volume < 25.0


@requires_manifold
@pytest.mark.parametrize("lattice", [
    BeamLattice(),
    BeamLattice(beams=(Beam((1, 1, 1), (1, 1, 1), 1.0, 1.0),)),
    BeamLattice(beams=(Beam((0, 0, 0), (1, 0, 0), 0.0, 0.0),)),
])
def test_degenerate_lattice_rejected(lattice):
    with pytest.raises(DegenerateGeometryError):
        TrimeshKernel().volume_from_lattice(lattice, 'bad')


@requires_manifold
def test_export_stl(tmp_path):
    kernel = TrimeshKernel()
    volume = _box(kernel, 'cube', (1.0, 1.0, 1.0))
    path = kernel.export_stl(volume, tmp_path / 'nested' / 'cube.stl')
    assert path.exists()
    loaded = trimesh.load(str(path))
    assert len(loaded.faces) == 12


@requires_manifold
def test_chassis_solid():
    volume = construct('chassis', ChassisParameters(), TrimeshKernel())
    assert volume.mesh.is_watertight
    np.testing.assert_allclose(volume.bounds, [[-2000, -900, -600], [2000, 900, 600]])
    assert volume.volume < 4000 * 1800 * 1200 - 3900 * 1700 * 1100


@requires_manifold
def test_habitat_solid():
    volume = construct('habitat', HabitatParameters(), TrimeshKernel())
    assert volume.mesh.is_watertight
    assert volume.bounds[1][2] == pytest.approx(60.0)
    assert volume.volume > 0


@requires_manifold
def test_small_fusor_solid():
    params = FusorParameters(grid_latitudes=2, grid_meridians=2, grid_samples=12)
    volume = construct('fusor', params, TrimeshKernel())
    assert volume.mesh.is_watertight
    # Top port tube ends at R - 2 + 40
    assert volume.bounds[1][2] == pytest.approx(118.0, abs=1e-6)
    assert volume.bounds[0][2] == pytest.approx(-118.0, abs=1e-6)
