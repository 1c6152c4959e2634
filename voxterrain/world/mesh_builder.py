from __future__ import annotations

import logging
import math
import time

import numpy as np

from voxterrain.config import ISOVALUE, VERTEX_MERGE_TOLERANCE
from voxterrain.util.math import chunk_offset
from voxterrain.world.chunk import ChunkArtifact, ChunkCoord, ChunkMesh, CollisionMesh
from voxterrain.world.kd_tree import construct_tree, depth, points_in_range
from voxterrain.world.marching_cubes import marching_cubes
from voxterrain.world.noise import NoiseConfig, NoiseField
from voxterrain.world.normals import calculate_normals

logger = logging.getLogger(__name__)


def deduplicate_vertices(
    candidates: np.ndarray,
    *,
    tolerance: float = VERTEX_MERGE_TOLERANCE,
) -> tuple[np.ndarray, np.ndarray]:
    """Merge near-identical candidate vertices into an indexed mesh.

    ``tolerance`` is a squared distance. Candidates are walked in order; the
    first unassigned one starts a new output vertex and every candidate found
    within range of it (earlier or later) is pointed at that vertex, replacing
    any earlier assignment. Merging is not transitive: a chain of points each
    within range of the next may end up split over several output vertices.

    Returns ``(positions (N,3) float32, indices (M,) uint32)`` where ``M`` is
    the candidate count and positions keep first-occurrence order.
    """
    if not tolerance > 0:
        raise ValueError("tolerance must be > 0")
    cand = np.asarray(candidates, dtype=np.float32).reshape(-1, 3)
    count = cand.shape[0]
    if count == 0:
        return np.zeros((0, 3), dtype=np.float32), np.zeros(0, dtype=np.uint32)

    start = time.perf_counter()
    tree = construct_tree(cand)
    logger.debug(
        "Constructed tree (nodes=%d depth=%d) in %.3fms",
        len(tree), depth(tree), (time.perf_counter() - start) * 1000.0,
    )

    start = time.perf_counter()
    radius = math.sqrt(tolerance)
    assigned = [-1] * count
    kept: list[int] = []
    for index in range(count):
        if assigned[index] != -1:
            continue
        vert_index = len(kept)
        kept.append(index)
        # the range query returns the point itself
        for _, close_index in points_in_range(tree, tree.points[index], radius):
            assigned[close_index] = vert_index

    indices = np.asarray(assigned, dtype=np.int64)
    missing = np.flatnonzero(indices < 0)
    if missing.size:
        raise RuntimeError(f"vertex deduplication left {missing.size} candidate(s) unassigned (first: {int(missing[0])})")

    positions = cand[np.asarray(kept, dtype=np.int64)]
    logger.debug(
        "Deduplicated vertices in %.3fms, removed %.2f%% of vertices",
        (time.perf_counter() - start) * 1000.0,
        (1.0 - positions.shape[0] / count) * 100.0,
    )
    return positions, indices.astype(np.uint32)


def build_chunk_mesh(candidates: np.ndarray, *, tolerance: float = VERTEX_MERGE_TOLERANCE) -> ChunkMesh:
    positions, indices = deduplicate_vertices(candidates, tolerance=tolerance)
    normals = calculate_normals(positions, indices)
    return ChunkMesh(positions=positions, normals=normals, indices=indices)


def generate_chunk(
    seed: int,
    offset,
    size: int,
    *,
    noise_cfg: NoiseConfig | None = None,
    tolerance: float = VERTEX_MERGE_TOLERANCE,
    isovalue: float = ISOVALUE,
    coord: ChunkCoord = (0, 0, 0),
    field=None,
) -> ChunkArtifact:
    """Run the whole pipeline for one chunk.

    Pure: reads only its arguments, so it is safe to call concurrently for
    different offsets with the same seed. ``field`` overrides the seeded
    noise field (anything ``marching_cubes`` accepts).
    """
    start = time.perf_counter()
    off = np.asarray(offset, dtype=np.float32).reshape(3)
    if field is None:
        field = NoiseField(seed, noise_cfg)

    candidates = marching_cubes(size, off, field, isovalue)
    logger.debug(
        "chunk %s: marching cubes produced %d candidate vertices in %.3fms",
        coord, candidates.shape[0], (time.perf_counter() - start) * 1000.0,
    )

    mesh = build_chunk_mesh(candidates, tolerance=tolerance)
    collider = CollisionMesh.trimesh(mesh.positions, mesh.indices, off)
    logger.debug(
        "chunk %s: %d vertices, %d triangles in %.3fms",
        coord, mesh.vertex_count, mesh.triangle_count, (time.perf_counter() - start) * 1000.0,
    )
    return ChunkArtifact(coord=coord, offset=off, mesh=mesh, collider=collider)


def generate_chunk_at(seed: int, coord: ChunkCoord, size: int, span, **kwargs) -> ChunkArtifact:
    """``generate_chunk`` for an integer chunk coordinate."""
    return generate_chunk(seed, chunk_offset(coord, span), size, coord=tuple(coord), **kwargs)
