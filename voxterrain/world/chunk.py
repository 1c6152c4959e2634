from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

ChunkCoord = Tuple[int, int, int]

@dataclass(frozen=True)
class ChunkMesh:
    positions: np.ndarray  # (N,3) float32, chunk-local
    normals: np.ndarray  # (N,3) float32, parallel to positions
    indices: np.ndarray  # (3T,) uint32 triangle list

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0] // 3)

@dataclass(frozen=True)
class CollisionMesh:
    """Static trimesh collider input for an external physics engine."""
    vertices: np.ndarray  # (N,3) float32, same array as the render positions
    triangles: np.ndarray  # (T,3) uint32
    offset: np.ndarray  # (3,) float32 anchor in world space
    fixed: bool = True

    @classmethod
    def trimesh(cls, vertices: np.ndarray, indices: np.ndarray, offset: np.ndarray) -> "CollisionMesh":
        return cls(vertices=vertices, triangles=indices.reshape(-1, 3), offset=offset)

@dataclass(frozen=True)
class ChunkArtifact:
    coord: ChunkCoord
    offset: np.ndarray  # (3,) float32
    mesh: ChunkMesh
    collider: CollisionMesh

@dataclass
class InstalledChunk:
    coord: ChunkCoord
    offset: np.ndarray
    mesh: ChunkMesh
    collider: CollisionMesh
    installed_at: float  # perf_counter timestamp
