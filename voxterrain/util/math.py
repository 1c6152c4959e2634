from __future__ import annotations
import numpy as np

def normalize_rows(v: np.ndarray, *, fallback=(0.0, 1.0, 0.0), eps: float = 0.0) -> np.ndarray:
    """Normalize each row of an (N,3) array; rows with length <= eps become ``fallback``."""
    v = np.asarray(v, dtype=np.float32)
    n = np.linalg.norm(v, axis=-1, keepdims=True)
    ok = n > eps
    out = v / np.where(ok, n, np.float32(1.0))
    return np.where(ok, out, np.asarray(fallback, dtype=np.float32)).astype(np.float32)

def chunk_offset(coord, span) -> np.ndarray:
    """World-space offset of a chunk coordinate; ``span`` is a scalar or per-axis triple."""
    return (np.asarray(coord, dtype=np.float32) * np.asarray(span, dtype=np.float32)).astype(np.float32)
