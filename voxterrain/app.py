from __future__ import annotations

import logging
import time
from typing import Optional

from voxterrain.config import PROGRESS_LOG_INTERVAL
from voxterrain.world.world import World, WorldParams

logger = logging.getLogger(__name__)

def run_app(
    *,
    params: WorldParams,
    tick_rate: float,
    export_dir: Optional[str] = None,
    timeout_s: Optional[float] = None,
) -> World:
    """Generate the configured chunk range headlessly.

    The main loop stands in for a simulation tick: it polls the world once
    per tick, never blocking on workers, until every chunk is resolved.
    """
    world = World(params)
    world.start()

    tick_dt = 1.0 / max(1.0, float(tick_rate))
    start_t = time.perf_counter()
    last_log = start_t
    ticks = 0

    try:
        while not world.done:
            now = time.perf_counter()
            world.tick()
            ticks += 1

            if now - last_log >= PROGRESS_LOG_INTERVAL:
                last_log = now
                s = world.stats()
                logger.info(
                    "tick=%d installed=%d pending=%d ready=%d failed=%d chunks_left=%d",
                    ticks, s["installed"], s["pending"], s["ready"], s["failed"], world.chunks_left,
                )

            if timeout_s is not None and now - start_t > timeout_s:
                logger.warning("Giving up after %.1fs with %d chunks unresolved", timeout_s, len(world.scheduler.jobs))
                break

            spent = time.perf_counter() - now
            if spent < tick_dt:
                time.sleep(tick_dt - spent)
    finally:
        world.shutdown()

    s = world.stats()
    logger.info(
        "%d chunks installed (%d failed): %d vertices, %d triangles over %d ticks",
        s["installed"], s["failed"], s["vertices"], s["triangles"], ticks,
    )
    if export_dir:
        n = world.export(export_dir)
        logger.info("Exported %d chunks to %s", n, export_dir)
    return world
