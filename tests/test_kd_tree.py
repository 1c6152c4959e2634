import math

import numpy as np

from voxterrain.world.kd_tree import BRANCH, LEAF, NONE, SINGLE, construct_tree, depth, points_in_range


def _indices(tree, q, r):
    return sorted(i for _, i in points_in_range(tree, q, r))


def _brute(points, q, r):
    p = np.asarray(points, dtype=np.float32).astype(np.float64)
    d2 = ((p - np.asarray(q, dtype=np.float64)) ** 2).sum(axis=1)
    return sorted(int(i) for i in np.flatnonzero(d2 < r * r))


def test_empty_tree():
    tree = construct_tree(np.zeros((0, 3)))
    assert tree.root == NONE
    assert len(tree) == 0
    assert list(points_in_range(tree, (0, 0, 0), 1.0)) == []


def test_single_point_is_leaf():
    tree = construct_tree([(1.0, 2.0, 3.0)])
    assert tree.kind[tree.root] == LEAF
    assert list(points_in_range(tree, (1.0, 2.0, 3.0), 0.1)) == [((1.0, 2.0, 3.0), 0)]


def test_two_points_make_single_child():
    tree = construct_tree([(5.0, 0.0, 0.0), (1.0, 0.0, 0.0)])
    root = tree.root
    assert tree.kind[root] == SINGLE
    # lesser point on the node, greater one below it
    assert tree.point_index[root] == 1
    child = tree.right[root]
    assert tree.kind[child] == LEAF
    assert tree.point_index[child] == 0


def test_median_split_cycles_axes():
    pts = [(float(i), float(-i), float(i % 3)) for i in range(7)]
    tree = construct_tree(pts)
    root = tree.root
    assert tree.kind[root] == BRANCH
    assert tree.axis[root] == 0
    assert tree.point_index[root] == 3
    assert tree.axis[tree.left[root]] == 1
    assert tree.axis[tree.right[root]] == 1
    # lesser subtree holds x < 3, greater x > 3
    assert pts[tree.point_index[tree.left[root]]][0] < 3
    assert pts[tree.point_index[tree.right[root]]][0] > 3


def test_tree_is_balanced():
    rng = np.random.default_rng(0)
    tree = construct_tree(rng.random((1023, 3)))
    assert len(tree) == 1023
    assert depth(tree) <= 11


def test_every_point_stored_once():
    rng = np.random.default_rng(1)
    pts = rng.random((100, 3))
    tree = construct_tree(pts)
    assert sorted(tree.point_index) == list(range(100))


def test_range_query_matches_brute_force():
    rng = np.random.default_rng(2)
    pts = rng.random((400, 3)).astype(np.float32)
    tree = construct_tree(pts)
    for q in rng.random((25, 3)):
        for r in (0.05, 0.2, 0.5):
            assert _indices(tree, q, r) == _brute(pts, q, r)


def test_close_points_find_each_other():
    tol = 1e-7
    r = math.sqrt(tol)
    rng = np.random.default_rng(4)
    pts = (rng.random((200, 3)) * 30).astype(np.float32)
    a = pts[17].copy()
    b = a + np.array([1e-4, 0.0, 0.0], dtype=np.float32)
    pts = np.vstack([pts, b[None, :]])
    tree = construct_tree(pts)
    assert 200 in _indices(tree, a, r)
    assert 17 in _indices(tree, b, r)


def test_duplicates_on_the_split_plane_are_found():
    pts = [(1.0, float(i), 0.0) for i in range(5)] + [(1.0, 2.0, 0.0)] * 4
    tree = construct_tree(pts)
    assert _indices(tree, (1.0, 2.0, 0.0), 1e-3) == [2, 5, 6, 7, 8]


def test_query_excludes_points_at_exact_radius():
    tree = construct_tree([(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)])
    assert _indices(tree, (0.0, 0.0, 0.0), 1.0) == [0]
