from __future__ import annotations

import argparse
import logging
import random
from typing import Sequence

from voxterrain.app import run_app
from voxterrain.config import (
    APP_VERSION,
    DEFAULT_SEED,
    DEFAULT_CHUNKS,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNK_SPAN,
    VERTEX_MERGE_TOLERANCE,
    DEFAULT_NOISE,
    DEFAULT_FRACTAL,
    DEFAULT_OCTAVES,
    DEFAULT_GAIN,
    DEFAULT_LACUNARITY,
    DEFAULT_FREQUENCY,
    DEFAULT_WORKERS,
    DEFAULT_TICK_RATE,
    DEFAULT_MAX_PER_TICK,
)
from voxterrain.world.noise import BASES, FRACTALS, NoiseConfig
from voxterrain.world.world import WorldParams

def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="voxterrain", description=f"Chunked marching-cubes terrain generator v{APP_VERSION}")
    p.add_argument("--seed", default=str(DEFAULT_SEED), help=f"unsigned 64-bit seed or 'random' (default: {DEFAULT_SEED})")
    p.add_argument("--chunks", type=int, nargs=3, metavar=("X", "Y", "Z"), default=list(DEFAULT_CHUNKS), help="chunk range per axis (default: 10 10 10)")
    p.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="lattice points per chunk side (default: 32)")
    p.add_argument("--chunk-span", type=float, default=DEFAULT_CHUNK_SPAN, help="world units between chunk origins (default: 31.0)")
    p.add_argument("--tolerance", type=float, default=VERTEX_MERGE_TOLERANCE, help="squared vertex merge distance (default: 1e-7)")
    p.add_argument("--noise", choices=list(BASES), default=DEFAULT_NOISE, help="base noise (fast or simplex)")
    p.add_argument("--fractal", choices=list(FRACTALS), default=DEFAULT_FRACTAL, help="fractal kind (default: fbm)")
    p.add_argument("--octaves", type=int, default=DEFAULT_OCTAVES, help="fractal octaves (default: 1)")
    p.add_argument("--gain", type=float, default=DEFAULT_GAIN, help="fractal gain (default: 0.6)")
    p.add_argument("--lacunarity", type=float, default=DEFAULT_LACUNARITY, help="fractal lacunarity (default: 2.0)")
    p.add_argument("--frequency", type=float, default=DEFAULT_FREQUENCY, help="base frequency (default: 0.05)")
    p.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="worker threads (default: 0 = cpu count)")
    p.add_argument("--tick-rate", type=float, default=DEFAULT_TICK_RATE, help="collection ticks per second (default: 60)")
    p.add_argument("--max-per-tick", type=int, default=DEFAULT_MAX_PER_TICK, help="chunks installed per tick, 0 = all ready (default: 0)")
    p.add_argument("--timeout", type=float, default=None, help="stop waiting after this many seconds")
    p.add_argument("--export", metavar="DIR", default=None, help="write each chunk as DIR/chunk_X_Y_Z.npz")
    p.add_argument("--debug", action="store_true", help="enable debug logs (per-stage timings)")
    return p.parse_args(argv)

def _parse_seed(text: str) -> int:
    if text.lower() == "random":
        return random.randint(0, 2**64 - 1)
    seed = int(text, 0)
    if not 0 <= seed < 2**64:
        raise ValueError("seed must fit in an unsigned 64-bit integer")
    return seed

def build_params(args: argparse.Namespace) -> WorldParams:
    noise = NoiseConfig(
        fractal=str(args.fractal),
        octaves=int(args.octaves),
        gain=float(args.gain),
        lacunarity=float(args.lacunarity),
        frequency=float(args.frequency),
        base=str(args.noise),
    )
    return WorldParams(
        seed=_parse_seed(str(args.seed)),
        chunks=tuple(args.chunks),
        chunk_size=int(args.chunk_size),
        chunk_span=float(args.chunk_span),
        tolerance=float(args.tolerance),
        noise=noise,
        workers=int(args.workers),
        max_per_tick=int(args.max_per_tick),
    )

def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="[voxterrain] %(levelname)s %(threadName)s %(name)s: %(message)s",
    )
    try:
        params = build_params(args)
    except ValueError as e:
        raise SystemExit(f"voxterrain: error: {e}") from e

    logging.getLogger("voxterrain").info("seed=%d noise=%s/%s chunks=%s", params.seed, params.noise.base, params.noise.fractal, params.chunks)
    run_app(
        params=params,
        tick_rate=float(args.tick_rate),
        export_dir=args.export,
        timeout_s=args.timeout,
    )

if __name__ == "__main__":
    main()
