"""
Per-text embedding outcomes.

A provider returns one result per input text: either the vector or the
reason it could not be produced. Downstream code turns failures into the
empty vector, which scores zero similarity against everything.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np


@dataclass(frozen=True)
class EmbeddingSuccess:
    vector: tuple[float, ...]


@dataclass(frozen=True)
class EmbeddingFailure:
    reason: str


EmbeddingResult = Union[EmbeddingSuccess, EmbeddingFailure]

EMPTY_VECTOR = np.zeros(0, dtype=np.float64)


def to_result(raw: Sequence[float] | None, dimension: int | None = None) -> EmbeddingResult:
    """Validate a raw vector from a provider response."""
    if raw is None:
        return EmbeddingFailure("missing from provider response")
    try:
        values = tuple(float(v) for v in raw)
    except (TypeError, ValueError):
        return EmbeddingFailure("non-numeric vector")
    if not values:
        return EmbeddingFailure("empty vector")
    if not all(math.isfinite(v) for v in values):
        return EmbeddingFailure("non-finite values in vector")
    if dimension is not None and len(values) != dimension:
        return EmbeddingFailure(f"expected {dimension} dimensions, got {len(values)}")
    return EmbeddingSuccess(values)


def vector_of(result: EmbeddingResult) -> np.ndarray:
    if isinstance(result, EmbeddingSuccess):
        return np.asarray(result.vector, dtype=np.float64)
    return EMPTY_VECTOR
