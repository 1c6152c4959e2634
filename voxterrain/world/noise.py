from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from opensimplex import OpenSimplex

FRACTALS = ("fbm", "billow", "ridged")
BASES = ("fast", "simplex")


@dataclass(frozen=True)
class NoiseConfig:
    """Fractal noise settings.

    The default base is "fast" value noise, not gradient (Perlin) noise, so
    terrain shapes differ from a Perlin-fractal generator at the same seed.
    Use base="simplex" for gradient noise.
    """

    fractal: str = "fbm"
    octaves: int = 1
    gain: float = 0.6
    lacunarity: float = 2.0
    frequency: float = 0.05
    base: str = "fast"  # "fast" | "simplex"

    def __post_init__(self) -> None:
        if self.fractal not in FRACTALS:
            raise ValueError(f"unknown fractal kind {self.fractal!r} (expected one of {FRACTALS})")
        if self.base not in BASES:
            raise ValueError(f"unknown noise base {self.base!r} (expected one of {BASES})")
        if self.octaves < 1:
            raise ValueError("octaves must be >= 1")


def fold_seed(seed: int) -> int:
    """Fold an unsigned 64-bit seed into 32 bits for the lattice hash."""
    s = int(seed) & 0xFFFFFFFFFFFFFFFF
    return (s ^ (s >> 32)) & 0xFFFFFFFF


class FastValueNoise3D:
    """Fast 3D value noise with fully vectorized numpy implementation.

    Uses an integer hash on lattice points and smooth interpolation.
    Deterministic for a given seed. Output range is [-1, 1).
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        self._seed32 = np.uint32(fold_seed(seed))

    @staticmethod
    def _fade(t: np.ndarray) -> np.ndarray:
        # smootherstep
        return t * t * t * (t * (t * 6 - 15) + 10)

    def _hash(self, xi: np.ndarray, yi: np.ndarray, zi: np.ndarray) -> np.ndarray:
        x = (
            (xi.astype(np.uint32) * np.uint32(374761393))
            ^ (yi.astype(np.uint32) * np.uint32(668265263))
            ^ (zi.astype(np.uint32) * np.uint32(2246822519))
            ^ self._seed32
        )
        x ^= (x >> np.uint32(13))
        x *= np.uint32(1274126177)
        x ^= (x >> np.uint32(16))
        return (x.astype(np.float32) / np.float32(2**32))

    def noise(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        # x,y,z: float arrays (same shape)
        xi0 = np.floor(x).astype(np.int64)
        yi0 = np.floor(y).astype(np.int64)
        zi0 = np.floor(z).astype(np.int64)
        xi1, yi1, zi1 = xi0 + 1, yi0 + 1, zi0 + 1

        u = self._fade((x - xi0).astype(np.float32))
        v = self._fade((y - yi0).astype(np.float32))
        w = self._fade((z - zi0).astype(np.float32))

        c000 = self._hash(xi0, yi0, zi0)
        c100 = self._hash(xi1, yi0, zi0)
        c010 = self._hash(xi0, yi1, zi0)
        c110 = self._hash(xi1, yi1, zi0)
        c001 = self._hash(xi0, yi0, zi1)
        c101 = self._hash(xi1, yi0, zi1)
        c011 = self._hash(xi0, yi1, zi1)
        c111 = self._hash(xi1, yi1, zi1)

        # trilinear interpolation with fade
        x00 = c000 + (c100 - c000) * u
        x10 = c010 + (c110 - c010) * u
        x01 = c001 + (c101 - c001) * u
        x11 = c011 + (c111 - c011) * u
        y0 = x00 + (x10 - x00) * v
        y1 = x01 + (x11 - x01) * v
        n = y0 + (y1 - y0) * w  # [0,1)
        return n * np.float32(2.0) - np.float32(1.0)


class SimplexNoise3D:
    """opensimplex-backed base noise. Slower, kept for quality."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        # opensimplex seeds are signed 64-bit
        s = self.seed & 0xFFFFFFFFFFFFFFFF
        self._simp = OpenSimplex(s - (1 << 64) if s >= (1 << 63) else s)

    def noise(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        flat = [
            self._simp.noise3(float(a), float(b), float(c))
            for a, b, c in zip(x.ravel(), y.ravel(), z.ravel())
        ]
        return np.asarray(flat, dtype=np.float32).reshape(x.shape)

    def axes(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        # noise3array evaluates the full lattice and returns it as [z, y, x]
        out = self._simp.noise3array(
            np.asarray(xs, dtype=np.float64),
            np.asarray(ys, dtype=np.float64),
            np.asarray(zs, dtype=np.float64),
        )
        return np.ascontiguousarray(np.transpose(out, (2, 1, 0))).astype(np.float32)


class NoiseField:
    """Seeded fractal scalar field over world space.

    ``sample`` evaluates a single point; ``grid`` evaluates the lattice spanned
    by three coordinate axes in one vectorized call. Both go through the same
    per-octave arithmetic, so a lattice value equals the matching point sample.
    """

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        if self.cfg.base == "simplex":
            self.base = SimplexNoise3D(self.seed)
        else:
            self.base = FastValueNoise3D(self.seed)

    def _shape(self, n: np.ndarray) -> np.ndarray:
        if self.cfg.fractal == "billow":
            return np.abs(n) * np.float32(2.0) - np.float32(1.0)
        if self.cfg.fractal == "ridged":
            return np.float32(1.0) - np.abs(n)
        return n

    def _fractal(self, octave_fn) -> np.ndarray:
        freq = float(self.cfg.frequency)
        amp = 1.0
        total = None
        norm = 0.0
        for _ in range(self.cfg.octaves):
            n = self._shape(octave_fn(freq))
            term = n * np.float32(amp)
            total = term if total is None else total + term
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        return (total / np.float32(max(norm, 1e-9))).astype(np.float32)

    def grid(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """Return field values with shape (len(xs), len(ys), len(zs))."""
        xs = np.asarray(xs, dtype=np.float32)
        ys = np.asarray(ys, dtype=np.float32)
        zs = np.asarray(zs, dtype=np.float32)
        if isinstance(self.base, SimplexNoise3D):
            return self._fractal(
                lambda f: self.base.axes(xs * np.float32(f), ys * np.float32(f), zs * np.float32(f))
            )
        gx, gy, gz = np.meshgrid(xs, ys, zs, indexing="ij")
        return self._fractal(
            lambda f: self.base.noise(gx * np.float32(f), gy * np.float32(f), gz * np.float32(f))
        )

    def sample(self, point) -> float:
        x, y, z = (np.array([c], dtype=np.float32) for c in point)
        return float(
            self._fractal(
                lambda f: self.base.noise(x * np.float32(f), y * np.float32(f), z * np.float32(f))
            )[0]
        )

    def __call__(self, x: float, y: float, z: float) -> float:
        return self.sample((x, y, z))
