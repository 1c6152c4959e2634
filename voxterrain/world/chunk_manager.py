from __future__ import annotations

import enum
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from voxterrain.world.chunk import ChunkArtifact, ChunkCoord

logger = logging.getLogger(__name__)


class JobState(enum.Enum):
    PENDING = "pending"
    READY = "ready"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class ChunkJob:
    """Handle to one in-flight chunk generation."""

    coord: ChunkCoord
    offset: np.ndarray
    future: "Future[ChunkArtifact]"
    state: JobState = JobState.PENDING
    error: Optional[BaseException] = field(default=None, repr=False)

    def done(self) -> bool:
        return self.future.done()

    def try_receive(self) -> Optional[ChunkArtifact]:
        """Non-blocking: the artifact the first time it is available, else None.

        Raises the worker's exception if the job failed. Once the artifact has
        been handed out the job is INSTALLED and never returns it again.
        """
        if self.state in (JobState.INSTALLED, JobState.FAILED):
            return None
        if not self.future.done():
            return None
        if self.future.cancelled():
            self.state = JobState.FAILED
            return None
        exc = self.future.exception()
        if exc is not None:
            self.state = JobState.FAILED
            self.error = exc
            raise exc
        self.state = JobState.INSTALLED
        return self.future.result()


class ChunkScheduler:
    """Runs one independent chunk job per coordinate on a shared thread pool.

    ``poll`` is meant to be called once per tick from a single consumer
    thread. It never blocks: jobs still running stay pending, finished jobs
    are handed to ``install`` exactly once and then forgotten.
    """

    def __init__(self, generate_fn: Callable[..., ChunkArtifact], *, workers: int = 0) -> None:
        self.generate_fn = generate_fn
        self.workers = int(workers) if workers and workers > 0 else (os.cpu_count() or 1)
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="chunkgen")
        self.jobs: Dict[ChunkCoord, ChunkJob] = {}
        self.installed: List[ChunkCoord] = []
        self.failed: Dict[ChunkCoord, BaseException] = {}
        self._submitted: set[ChunkCoord] = set()

    @property
    def pending(self) -> List[ChunkCoord]:
        """Submitted jobs whose worker has not finished yet."""
        return [c for c, job in self.jobs.items() if not job.done()]

    @property
    def ready(self) -> List[ChunkCoord]:
        """Finished jobs not yet collected by `poll`."""
        return [c for c, job in self.jobs.items() if job.done()]

    def submit(self, coord: ChunkCoord, offset, /, *args, **kwargs) -> ChunkJob:
        """Queue ``generate_fn(*args, **kwargs)`` for ``coord``.

        ``coord`` and ``offset`` are positional-only so the generator may take
        keywords of the same name.
        """
        coord = tuple(int(c) for c in coord)
        if coord in self._submitted:
            raise ValueError(f"chunk {coord} already submitted")
        self._submitted.add(coord)
        off = np.asarray(offset, dtype=np.float32).reshape(3)
        future = self._executor.submit(self.generate_fn, *args, **kwargs)
        job = ChunkJob(coord=coord, offset=off, future=future)
        self.jobs[coord] = job
        return job

    def poll(self, install: Callable[[ChunkJob, ChunkArtifact], None], max_items: int | None = None) -> List[ChunkCoord]:
        """Install every finished job (at most ``max_items``) and return their coordinates."""
        done: List[ChunkCoord] = []
        for coord, job in list(self.jobs.items()):
            if not job.done():
                continue
            if job.state == JobState.PENDING:
                job.state = JobState.READY
            if max_items is not None and len(done) >= max_items:
                # stays READY until a later poll
                continue
            try:
                artifact = job.try_receive()
            except BaseException as exc:
                # includes SystemExit raised inside a worker
                logger.error("chunk %s generation failed: %s", coord, exc, exc_info=exc)
                self.failed[coord] = exc
                del self.jobs[coord]
                continue
            del self.jobs[coord]
            if artifact is None:
                # cancelled before it ran
                continue
            try:
                install(job, artifact)
            except Exception as exc:
                logger.error("chunk %s install failed: %s", coord, exc, exc_info=exc)
                job.state = JobState.FAILED
                job.error = exc
                self.failed[coord] = exc
                continue
            self.installed.append(coord)
            done.append(coord)
        return done

    def shutdown(self, *, cancel_pending: bool = True, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
