import math
import os

os.environ.setdefault("OPENBLAS_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")

import numpy as np


def normalize(v) -> np.ndarray:
    v = np.asarray(v, dtype=np.float32)
    norm = float(np.linalg.norm(v))
    if norm == 0:
        return v
    return v / norm


def normalize_rows(matrix) -> np.ndarray:
    m = np.asarray(matrix, dtype=np.float32)
    if m.ndim == 1:
        m = m.reshape(1, -1)
    norms = np.linalg.norm(m, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1, norms)
    return m / norms


def cosine_similarity(a, b) -> float:
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0 or nb == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (na * nb), -1.0, 1.0))


def cosine_scores(matrix, query) -> np.ndarray:
    """Cosine similarity of every row in `matrix` against `query`.

    Rows with zero magnitude score 0, as does everything when the query
    itself is a zero vector.
    """
    m = normalize_rows(matrix)
    q = normalize(query)
    if m.shape[0] == 0:
        return np.empty(0, dtype=np.float32)
    if m.shape[1] != q.shape[0]:
        raise ValueError(f"dimension mismatch: lines have {m.shape[1]}, query has {q.shape[0]}")
    return np.clip(m @ q, -1.0, 1.0).astype(np.float32)


def percentile(sorted_scores, p: float) -> float:
    """Nearest-rank percentile over scores already sorted ascending."""
    n = len(sorted_scores)
    if n == 0:
        return 0.0
    # round off float noise: 99.9% of 1000 must land on index 998, not 999
    rank = math.ceil(round(p * n / 100, 9)) - 1
    rank = min(max(rank, 0), n - 1)
    return float(sorted_scores[rank])
