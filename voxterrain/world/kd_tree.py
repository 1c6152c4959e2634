from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple

import numpy as np

AXIS_X, AXIS_Y, AXIS_Z = 0, 1, 2

LEAF = 0
SINGLE = 1  # one point plus a single (greater) leaf child
BRANCH = 2

NONE = -1


@dataclass
class KdTree:
    """Static 3D k-d tree stored as an arena of nodes.

    Node ``n`` holds the candidate ``point_index[n]`` split on ``axis[n]``.
    ``left``/``right`` are child node ids (``-1`` when absent); a SINGLE node
    keeps its only child in ``right``.
    """

    points: List[Tuple[float, float, float]]
    kind: List[int] = field(default_factory=list)
    axis: List[int] = field(default_factory=list)
    point_index: List[int] = field(default_factory=list)
    left: List[int] = field(default_factory=list)
    right: List[int] = field(default_factory=list)
    root: int = NONE

    def __len__(self) -> int:
        return len(self.kind)

    def _add(self, kind: int, axis: int, idx: int, left: int = NONE, right: int = NONE) -> int:
        self.kind.append(kind)
        self.axis.append(axis)
        self.point_index.append(idx)
        self.left.append(left)
        self.right.append(right)
        return len(self.kind) - 1

    def _build(self, idxs: List[int], axis: int) -> int:
        if len(idxs) == 1:
            return self._add(LEAF, axis, idxs[0])
        pts = self.points
        # stable: equal coordinates keep candidate order
        idxs = sorted(idxs, key=lambda i: pts[i][axis])
        nxt = (axis + 1) % 3
        if len(idxs) == 2:
            child = self._add(LEAF, nxt, idxs[1])
            return self._add(SINGLE, axis, idxs[0], right=child)
        mid = len(idxs) // 2
        lesser = self._build(idxs[:mid], nxt)
        greater = self._build(idxs[mid + 1:], nxt)
        return self._add(BRANCH, axis, idxs[mid], left=lesser, right=greater)


def construct_tree(points: Sequence) -> KdTree:
    """Build the tree over ``points`` (N,3); node payloads are indices into it."""
    arr = np.asarray(points, dtype=np.float32).reshape(-1, 3)
    tree = KdTree(points=[tuple(p) for p in arr.tolist()])
    if len(tree.points) > 0:
        tree.root = tree._build(list(range(len(tree.points))), AXIS_X)
    return tree


def points_in_range(tree: KdTree, point, radius: float) -> Iterator[Tuple[Tuple[float, float, float], int]]:
    """Yield ``(point, index)`` for every stored point with squared distance < radius**2."""
    if tree.root == NONE:
        return
    qx, qy, qz = (float(c) for c in point)
    q = (qx, qy, qz)
    r = float(radius)
    r2 = r * r
    pts = tree.points
    stack = [tree.root]
    while stack:
        node = stack.pop()
        idx = tree.point_index[node]
        px, py, pz = pts[idx]
        dx, dy, dz = px - qx, py - qy, pz - qz
        if dx * dx + dy * dy + dz * dz < r2:
            yield pts[idx], idx

        kind = tree.kind[node]
        if kind == LEAF:
            continue
        if kind == SINGLE:
            stack.append(tree.right[node])
            continue

        ax = tree.axis[node]
        # signed distance from the split plane to the query
        d = pts[idx][ax] - q[ax]
        if abs(d) < r:
            # greater pushed first so the lesser side is visited first
            stack.append(tree.right[node])
            stack.append(tree.left[node])
        elif d < 0.0:
            stack.append(tree.right[node])
        else:
            stack.append(tree.left[node])


def depth(tree: KdTree, node: int | None = None) -> int:
    if tree.root == NONE:
        return 0
    node = tree.root if node is None else node
    best = 0
    stack = [(node, 1)]
    while stack:
        n, d = stack.pop()
        best = max(best, d)
        for child in (tree.left[n], tree.right[n]):
            if child != NONE:
                stack.append((child, d + 1))
    return best
