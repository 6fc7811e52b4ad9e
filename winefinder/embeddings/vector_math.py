from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _pairwise_cosine


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when either vector is empty or has zero norm. Both vectors
    must have the same length otherwise.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or vb.size == 0:
        return 0.0
    if va.shape != vb.shape:
        raise ValueError(f"vector length mismatch: {va.shape[0]} != {vb.shape[0]}")
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def similarity_scores(query: np.ndarray, vectors: Sequence[np.ndarray]) -> np.ndarray:
    """Score *query* against every vector, keeping the order of *vectors*.

    Empty vectors (and everything, when the query is empty) score 0.
    """
    scores = np.zeros(len(vectors), dtype=np.float64)
    query = np.asarray(query, dtype=np.float64)
    if query.size == 0:
        return scores

    positions = [i for i, v in enumerate(vectors) if len(v) > 0]
    if not positions:
        return scores

    matrix = np.vstack([vectors[i] for i in positions])
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(f"vector length mismatch: {matrix.shape[1]} != {query.shape[0]}")
    # zero-norm rows come back as 0 from sklearn's normalisation
    sims = _pairwise_cosine(query.reshape(1, -1), matrix).ravel()
    scores[positions] = np.clip(sims, -1.0, 1.0)
    return scores
