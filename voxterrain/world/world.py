from __future__ import annotations

import itertools
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional, Tuple

import numpy as np

from voxterrain.config import (
    DEFAULT_CHUNKS,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNK_SPAN,
    DEFAULT_SEED,
    ISOVALUE,
    VERTEX_MERGE_TOLERANCE,
)
from voxterrain.util.math import chunk_offset
from voxterrain.world.chunk import ChunkArtifact, ChunkCoord, InstalledChunk
from voxterrain.world.chunk_manager import ChunkJob, ChunkScheduler
from voxterrain.world.mesh_builder import generate_chunk
from voxterrain.world.noise import NoiseConfig

logger = logging.getLogger(__name__)


@dataclass
class WorldParams:
    seed: int = DEFAULT_SEED
    chunks: Tuple[int, int, int] = DEFAULT_CHUNKS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_span: float = DEFAULT_CHUNK_SPAN
    tolerance: float = VERTEX_MERGE_TOLERANCE
    isovalue: float = ISOVALUE
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    workers: int = 0  # 0 = os.cpu_count()
    max_per_tick: int = 0  # 0 = unlimited

    def __post_init__(self) -> None:
        self.seed = int(self.seed) & 0xFFFFFFFFFFFFFFFF
        self.chunks = tuple(int(c) for c in self.chunks)
        if len(self.chunks) != 3 or min(self.chunks) < 1:
            raise ValueError(f"chunk range must be three positive counts, got {self.chunks}")
        if int(self.chunk_size) < 2:
            raise ValueError("chunk_size must be >= 2")
        if not float(self.chunk_span) > 0:
            raise ValueError("chunk_span must be > 0")
        if not float(self.tolerance) > 0:
            raise ValueError("tolerance must be > 0")

    @property
    def chunk_count(self) -> int:
        cx, cy, cz = self.chunks
        return cx * cy * cz


@dataclass
class WorldTimingData:
    start: float
    chunks_left: int


class World:
    """Live world: owns the chunk scheduler and the registry of installed chunks.

    Only the thread calling ``tick`` mutates ``chunks``; workers only ever
    produce artifacts.
    """

    def __init__(
        self,
        params: WorldParams,
        *,
        generate_fn: Callable[..., ChunkArtifact] = generate_chunk,
        on_install: Optional[Callable[[InstalledChunk], None]] = None,
    ) -> None:
        self.params = params
        self.on_install = on_install
        self.scheduler = ChunkScheduler(generate_fn, workers=params.workers)
        self.chunks: Dict[ChunkCoord, InstalledChunk] = {}
        self.timing: Optional[WorldTimingData] = None
        self.elapsed_ms: Optional[float] = None
        self.started = False

    def chunk_coords(self) -> Iterator[ChunkCoord]:
        cx, cy, cz = self.params.chunks
        return itertools.product(range(cx), range(cy), range(cz))

    def start(self) -> None:
        p = self.params
        self.started = True
        self.timing = WorldTimingData(start=time.perf_counter(), chunks_left=p.chunk_count)
        for coord in self.chunk_coords():
            offset = chunk_offset(coord, p.chunk_span)
            self.scheduler.submit(
                coord,
                offset,
                p.seed,
                offset,
                p.chunk_size,
                noise_cfg=p.noise,
                tolerance=p.tolerance,
                isovalue=p.isovalue,
                coord=coord,
            )
        logger.info(
            "Scheduled %d chunks (size=%d span=%.1f) on %d workers",
            p.chunk_count, p.chunk_size, p.chunk_span, self.scheduler.workers,
        )

    def _install(self, job: ChunkJob, artifact: ChunkArtifact) -> None:
        chunk = InstalledChunk(
            coord=job.coord,
            offset=job.offset,
            mesh=artifact.mesh,
            collider=artifact.collider,
            installed_at=time.perf_counter(),
        )
        if self.on_install is not None:
            self.on_install(chunk)
        self.chunks[job.coord] = chunk

    def tick(self) -> list[ChunkCoord]:
        """Collect finished chunks without blocking; returns the coordinates installed."""
        budget = self.params.max_per_tick if self.params.max_per_tick > 0 else None
        before_failed = len(self.scheduler.failed)
        done = self.scheduler.poll(self._install, max_items=budget)
        resolved = len(done) + len(self.scheduler.failed) - before_failed
        if self.timing is not None and resolved:
            self.timing.chunks_left -= resolved
            if self.timing.chunks_left <= 0:
                self.elapsed_ms = (time.perf_counter() - self.timing.start) * 1000.0
                logger.info(
                    "World generation done in %.3fms (%d installed, %d failed)",
                    self.elapsed_ms, len(self.chunks), len(self.scheduler.failed),
                )
                self.timing = None
        return done

    @property
    def chunks_left(self) -> int:
        return self.timing.chunks_left if self.timing is not None else 0

    @property
    def done(self) -> bool:
        return self.started and not self.scheduler.jobs

    def stats(self) -> dict:
        verts = sum(ch.mesh.vertex_count for ch in self.chunks.values())
        tris = sum(ch.mesh.triangle_count for ch in self.chunks.values())
        return {
            "installed": len(self.chunks),
            "pending": len(self.scheduler.pending),
            "ready": len(self.scheduler.ready),
            "failed": len(self.scheduler.failed),
            "vertices": verts,
            "triangles": tris,
        }

    def shutdown(self) -> None:
        self.scheduler.shutdown(cancel_pending=True)

    def export(self, out_dir) -> int:
        """Write every installed chunk to ``out_dir`` as ``chunk_X_Y_Z.npz``."""
        os.makedirs(out_dir, exist_ok=True)
        for (x, y, z), ch in sorted(self.chunks.items()):
            np.savez(
                os.path.join(out_dir, f"chunk_{x}_{y}_{z}.npz"),
                positions=ch.mesh.positions,
                normals=ch.mesh.normals,
                indices=ch.mesh.indices,
                triangles=ch.collider.triangles,
                offset=ch.offset,
            )
        return len(self.chunks)
