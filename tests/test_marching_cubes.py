import numpy as np
import pytest

from voxterrain.world.marching_cubes import configuration, interpolate_edges, marching_cubes, sample_lattice
from voxterrain.world.noise import NoiseConfig, NoiseField


def _sorted_rows(a):
    a = np.asarray(a, dtype=np.float64)
    return a[np.lexsort(a.T[::-1])]


def test_configuration_mask():
    assert configuration([-1.0] * 8) == 0
    assert configuration([1.0] * 8) == 255
    assert configuration([1.0] + [-1.0] * 7) == 1
    # exactly at the isovalue counts as below
    assert configuration([0.0] * 8) == 0
    assert configuration([-1, -1, -1, 0.5, -1, -1, -1, 0.5]) == (1 << 3) | (1 << 7)


@pytest.mark.parametrize("value", [-1.0, 1.0])
def test_field_without_crossing_yields_nothing(value):
    verts = marching_cubes(6, (0, 0, 0), lambda x, y, z: value)
    assert verts.shape == (0, 3)


def test_single_corner_cell_emits_one_triangle():
    field = lambda x, y, z: 1.0 if (x, y, z) == (0.0, 0.0, 0.0) else -1.0
    verts = marching_cubes(2, (0, 0, 0), field)
    assert verts.shape == (3, 3)
    expected = [(0.5, 0.0, 0.0), (0.0, 0.0, 0.5), (0.0, 0.5, 0.0)]
    assert np.allclose(verts, expected)


def test_field_is_sampled_at_world_offset():
    offset = (10.0, 20.0, 30.0)
    field = lambda x, y, z: 1.0 if (x, y, z) == offset else -1.0
    verts = marching_cubes(2, offset, field)
    # positions are chunk-local
    assert np.allclose(_sorted_rows(verts), _sorted_rows([(0.5, 0, 0), (0, 0, 0.5), (0, 0.5, 0)]))


def test_flat_slab_lies_on_the_crossing_height():
    verts = marching_cubes(6, (0, 0, 0), lambda x, y, z: 2.3 - y)
    # 5 x 5 crossing cells, two triangles each
    assert verts.shape == (150, 3)
    assert np.allclose(verts[:, 1], 2.3, atol=1e-5)


def test_cells_visited_x_major():
    # one lit corner in cell (0, 0, 2) and one in cell (2, 0, 0)
    lit = {(0.0, 0.0, 3.0), (3.0, 0.0, 0.0)}
    field = lambda x, y, z: 1.0 if (x, y, z) in lit else -1.0
    verts = marching_cubes(4, (0, 0, 0), field)
    assert verts.shape == (6, 3)
    assert np.all(verts[:3, 0] <= 0.5) and np.all(verts[:3, 2] >= 2.5)
    assert np.all(verts[3:, 0] >= 2.5) and np.all(verts[3:, 2] <= 0.5)


def test_grid_and_point_sampling_agree():
    field = NoiseField(77, NoiseConfig(frequency=0.5))

    class PointOnly:
        def sample(self, p):
            return field.sample(p)

    a = marching_cubes(8, (4.0, -2.0, 9.0), field)
    b = marching_cubes(8, (4.0, -2.0, 9.0), PointOnly())
    assert a.shape[0] > 0
    assert np.array_equal(a, b)


def test_sample_lattice_layout():
    vals = sample_lattice(3, (1, 2, 3), lambda x, y, z: 100 * x + 10 * y + z)
    assert vals.shape == (3, 3, 3)
    assert vals[0, 0, 0] == 123
    assert vals[2, 1, 0] == 100 * 3 + 10 * 3 + 3


def test_zero_denominator_resolves_to_midpoint():
    p1 = np.array([[0.0, 0.0, 0.0]], dtype=np.float32)
    p2 = np.array([[1.0, 0.0, 0.0]], dtype=np.float32)
    v = np.array([0.25], dtype=np.float32)
    out = interpolate_edges(p1, p2, v, v, 0.0)
    assert np.all(np.isfinite(out))
    assert np.allclose(out, [[0.5, 0.0, 0.0]])


def test_interpolation_factor_is_clamped():
    p1 = np.zeros((1, 3), dtype=np.float32)
    p2 = np.array([[0.0, 2.0, 0.0]], dtype=np.float32)
    out = interpolate_edges(p1, p2, np.array([1.0], np.float32), np.array([2.0], np.float32), 0.0)
    assert np.allclose(out, [[0.0, 0.0, 0.0]])


def test_too_small_chunk():
    with pytest.raises(ValueError):
        marching_cubes(1, (0, 0, 0), lambda x, y, z: 1.0)
