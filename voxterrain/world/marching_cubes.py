from __future__ import annotations

import numpy as np

from voxterrain.world.mc_tables import EDGES_ARR, POINT_OFFSETS_ARR, TRI_TABLE_ARR

ISOVALUE = 0.0


def configuration(values, isovalue: float = ISOVALUE) -> int:
    """8-bit mask of the corners whose value is above the isovalue."""
    mask = 0
    for i, v in enumerate(values):
        if v > isovalue:
            mask |= 1 << i
    return mask


def sample_lattice(size: int, offset, field) -> np.ndarray:
    """Sample ``field`` on the (size, size, size) corner lattice of one chunk.

    ``field`` may expose a vectorized ``grid(xs, ys, zs)`` (NoiseField), a
    per-point ``sample(point)``, or be a plain callable ``f(x, y, z)``.
    """
    off = np.asarray(offset, dtype=np.float32).reshape(3)
    local = np.arange(size, dtype=np.float32)
    xs, ys, zs = local + off[0], local + off[1], local + off[2]

    if hasattr(field, "grid"):
        return np.asarray(field.grid(xs, ys, zs), dtype=np.float32)

    fn = field.sample if hasattr(field, "sample") else (lambda p: field(*p))
    vals = np.zeros((size, size, size), dtype=np.float32)
    for i in range(size):
        for j in range(size):
            for k in range(size):
                vals[i, j, k] = float(fn((float(xs[i]), float(ys[j]), float(zs[k]))))
    return vals


def marching_cubes(size: int, offset, field, isovalue: float = ISOVALUE) -> np.ndarray:
    """Triangulate one chunk and return unindexed candidate vertices.

    Cells are visited x-major (x, then y, then z). Each emitted triangle
    contributes three consecutive rows in the order given by the case table.
    Positions are chunk-local; the field is sampled at local + offset.
    """
    size = int(size)
    if size < 2:
        raise ValueError("chunk size must be >= 2")
    iso = np.float32(isovalue)
    vals = sample_lattice(size, offset, field)
    n = size - 1

    # Per-corner values for every cell, shape (n, n, n, 8)
    corners = np.stack(
        [vals[ox:ox + n, oy:oy + n, oz:oz + n] for ox, oy, oz in POINT_OFFSETS_ARR],
        axis=-1,
    )
    bits = (corners > iso).astype(np.int64) << np.arange(8, dtype=np.int64)
    config = bits.sum(axis=-1)

    active = (config != 0) & (config != 255)
    if not np.any(active):
        return np.zeros((0, 3), dtype=np.float32)

    cells = np.argwhere(active)  # C order => x-major
    cell_vals = corners[active]
    rows = TRI_TABLE_ARR[config[active]]  # (A, 16)

    emit = rows >= 0
    cell_of = np.nonzero(emit)[0]
    edges = rows[emit]
    if edges.size == 0:
        return np.zeros((0, 3), dtype=np.float32)

    c1 = EDGES_ARR[edges, 0]
    c2 = EDGES_ARR[edges, 1]
    base = cells[cell_of]
    p1 = (base + POINT_OFFSETS_ARR[c1]).astype(np.float32)
    p2 = (base + POINT_OFFSETS_ARR[c2]).astype(np.float32)
    v1 = cell_vals[cell_of, c1]
    v2 = cell_vals[cell_of, c2]
    return interpolate_edges(p1, p2, v1, v2, iso)


def interpolate_edges(p1: np.ndarray, p2: np.ndarray, v1: np.ndarray, v2: np.ndarray, isovalue) -> np.ndarray:
    """Point where the field crosses ``isovalue`` on each edge.

    Edges with equal endpoint values resolve to their midpoint; the
    interpolation factor is clamped to the edge.
    """
    iso = np.float32(isovalue)
    diff = (v2 - v1).astype(np.float32)
    flat = diff == 0
    safe = np.where(flat, np.float32(1.0), diff)
    t = np.where(flat, np.float32(0.5), (iso - v1) / safe).astype(np.float32)
    t = np.clip(t, 0.0, 1.0).astype(np.float32)
    return (p1 + (p2 - p1) * t[:, None]).astype(np.float32)
