from __future__ import annotations

# App
APP_VERSION = "0.3.0"

# World
DEFAULT_SEED = 23478235784239483  # unsigned 64-bit
DEFAULT_CHUNKS = (10, 10, 10)  # chunk coordinate range per axis, fixed at startup
DEFAULT_CHUNK_SIZE = 32  # lattice points per axis -> (size - 1)**3 cells
DEFAULT_CHUNK_SPAN = 31.0  # world units between neighbouring chunk origins

# Isosurface
ISOVALUE = 0.0
VERTEX_MERGE_TOLERANCE = 1e-7  # squared distance

# Noise
DEFAULT_NOISE = "fast"  # "fast" (numpy value noise) | "simplex" (opensimplex)
DEFAULT_FRACTAL = "fbm"
DEFAULT_OCTAVES = 1
DEFAULT_GAIN = 0.6
DEFAULT_LACUNARITY = 2.0
DEFAULT_FREQUENCY = 0.05

# Scheduling
DEFAULT_WORKERS = 0  # 0 = os.cpu_count()
DEFAULT_TICK_RATE = 60.0  # collection ticks per second
DEFAULT_MAX_PER_TICK = 0  # 0 = install every ready chunk each tick
PROGRESS_LOG_INTERVAL = 1.0  # seconds
