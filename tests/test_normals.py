import numpy as np

from voxterrain.world.normals import calculate_normals, face_normals


def test_face_normal_uses_consecutive_edges():
    pos = np.array([(0, 0, 0), (1, 0, 0), (0, 0, 1)], dtype=np.float32)
    fn = face_normals(pos, np.array([0, 1, 2], dtype=np.uint32))
    # cross((1,0,0), (-1,0,1))
    assert np.allclose(fn, [[0.0, -1.0, 0.0]])


def test_single_triangle_normals():
    pos = np.array([(0, 0, 0), (1, 0, 0), (0, 0, 1)], dtype=np.float32)
    n = calculate_normals(pos, np.array([0, 1, 2], dtype=np.uint32))
    assert np.allclose(n, [[0.0, -1.0, 0.0]] * 3)


def test_shared_vertex_is_area_weighted():
    pos = np.array(
        [
            (0, 0, 0),
            (0, 0, 2), (2, 0, 0),  # large triangle, normal +y (|n| = 4)
            (0, 1, 0), (0, 0, 1),  # small triangle, normal +x (|n| = 1)
        ],
        dtype=np.float32,
    )
    idx = np.array([0, 1, 2, 0, 3, 4], dtype=np.uint32)
    n = calculate_normals(pos, idx)
    assert np.allclose(n[0], np.array([1.0, 4.0, 0.0]) / np.sqrt(17.0), atol=1e-6)
    assert np.allclose(n[1], [0.0, 1.0, 0.0])
    assert np.allclose(n[3], [1.0, 0.0, 0.0])


def test_degenerate_and_unused_vertices_fall_back():
    pos = np.array([(0, 0, 0), (1, 0, 0), (2, 0, 0), (5, 5, 5)], dtype=np.float32)
    idx = np.array([0, 1, 2], dtype=np.uint32)  # collinear
    n = calculate_normals(pos, idx)
    assert np.all(np.isfinite(n))
    assert np.allclose(n, [[0.0, 1.0, 0.0]] * 4)

    n = calculate_normals(pos, idx, fallback=(0.0, 0.0, 1.0))
    assert np.allclose(n, [[0.0, 0.0, 1.0]] * 4)


def test_empty_mesh():
    n = calculate_normals(np.zeros((0, 3), dtype=np.float32), np.zeros(0, dtype=np.uint32))
    assert n.shape == (0, 3)
