from __future__ import annotations

import logging
import time

import numpy as np

from voxterrain.util.math import normalize_rows

logger = logging.getLogger(__name__)

UP = (0.0, 1.0, 0.0)


def face_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """Un-normalized normal per triangle: cross(p1 - p0, p2 - p1)."""
    tris = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    p0 = positions[tris[:, 0]]
    p1 = positions[tris[:, 1]]
    p2 = positions[tris[:, 2]]
    return np.cross(p1 - p0, p2 - p1).astype(np.float32)


def calculate_normals(positions: np.ndarray, indices: np.ndarray, *, fallback=UP) -> np.ndarray:
    """Area-weighted vertex normals for an indexed triangle list.

    Every face normal is added, unnormalized, to its three vertices and the
    sums are normalized at the end. Vertices whose sum is zero (only touched
    by degenerate triangles, or by none) get ``fallback``.
    """
    start = time.perf_counter()
    pos = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
    idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    acc = np.zeros_like(pos)
    if idx.size:
        fn = face_normals(pos, idx)
        tris = idx.reshape(-1, 3)
        for corner in range(3):
            np.add.at(acc, tris[:, corner], fn)
    out = normalize_rows(acc, fallback=fallback)
    logger.debug(
        "Generated normals for %d vertices / %d triangles in %.3fms",
        pos.shape[0], idx.size // 3, (time.perf_counter() - start) * 1000.0,
    )
    return out
