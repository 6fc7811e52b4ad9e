from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from ..analytics.feedback import FeedbackCount, FeedbackSource
from ..embeddings.encoder import EmbeddingProvider
from ..embeddings.results import EMPTY_VECTOR, EmbeddingFailure, vector_of
from ..embeddings.vector_math import similarity_scores
from .cache import LanguageIndexCache
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .models import Wine

logger = logging.getLogger(__name__)

_NO_FEEDBACK = FeedbackCount()


@dataclass(frozen=True)
class ScoredCandidate:
    wine: Wine
    similarity: float
    feedback_score: int = 0
    final_score: float = 0.0


@dataclass
class RankingOutcome:
    candidates: list[ScoredCandidate] = field(default_factory=list)
    query_embedding_failed: bool = False
    feedback_unavailable: bool = False
    unembedded_items: int = 0


def rank_by_similarity(
    wines: Sequence[Wine],
    similarities: Sequence[float],
    cap: int,
) -> list[ScoredCandidate]:
    """Stage 1: best *cap* wines by similarity, ties kept in catalog order."""
    scored = [
        ScoredCandidate(wine=wine, similarity=float(sim))
        for wine, sim in zip(wines, similarities)
    ]
    scored.sort(key=lambda c: c.similarity, reverse=True)
    return scored[:cap]


def max_feedback_diff(feedback: Mapping[str, FeedbackCount], wine_ids: Sequence[str] | None = None) -> int:
    """Largest |likes - dislikes|, over *wine_ids* if given, else over all wines."""
    if wine_ids is None:
        counts = feedback.values()
    else:
        counts = [feedback[w] for w in wine_ids if w in feedback]
    return max((abs(c.score) for c in counts), default=0)


def rerank_with_feedback(
    candidates: Sequence[ScoredCandidate],
    feedback: Mapping[str, FeedbackCount],
    alpha: float,
    beta: float,
    max_diff: int,
) -> list[ScoredCandidate]:
    """Stage 2: blend similarity with normalised feedback and re-sort."""
    reranked = []
    for candidate in candidates:
        fb_score = feedback.get(candidate.wine.id, _NO_FEEDBACK).score
        norm_fb = fb_score / max_diff if max_diff > 0 else 0.0
        reranked.append(ScoredCandidate(
            wine=candidate.wine,
            similarity=candidate.similarity,
            feedback_score=fb_score,
            final_score=alpha * candidate.similarity + beta * norm_fb,
        ))
    reranked.sort(key=lambda c: c.final_score, reverse=True)
    return reranked


class RankingPipeline:
    """Semantic search over a language index, reranked with user feedback."""

    def __init__(
        self,
        index_cache: LanguageIndexCache,
        provider: EmbeddingProvider,
        feedback_source: FeedbackSource,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
    ) -> None:
        self.index_cache = index_cache
        self.provider = provider
        self.feedback_source = feedback_source
        self.config = config

    def search(self, language: str | None, query: str, top_k: int | None = None) -> list[ScoredCandidate]:
        return self.rank(language, query, top_k).candidates

    def rank(self, language: str | None, query: str, top_k: int | None = None) -> RankingOutcome:
        cfg = self.config
        limit = top_k if top_k is not None and top_k > 0 else cfg.top_k
        index = self.index_cache.get(language)

        query_vec = self._embed_query(query, index.dimension)
        sims = similarity_scores(query_vec, index.embeddings)
        first_stage = rank_by_similarity(index.items, sims, cfg.first_stage_cap)

        feedback, feedback_ok = self._load_feedback()
        if cfg.feedback_normalization == "candidates":
            max_diff = max_feedback_diff(feedback, [c.wine.id for c in first_stage])
        else:
            max_diff = max_feedback_diff(feedback)
        reranked = rerank_with_feedback(first_stage, feedback, cfg.alpha, cfg.beta, max_diff)

        return RankingOutcome(
            candidates=reranked[:limit],
            query_embedding_failed=query_vec.size == 0,
            feedback_unavailable=not feedback_ok,
            unembedded_items=len(index.failures),
        )

    def _embed_query(self, query: str, dimension: int | None = None) -> np.ndarray:
        try:
            results = self.provider.embed([query])
        except Exception:
            logger.warning("Query embedding failed, similarities will be zero", exc_info=True)
            return EMPTY_VECTOR
        if len(results) != 1:
            logger.warning("Provider returned %d results for one query", len(results))
            return EMPTY_VECTOR
        if isinstance(results[0], EmbeddingFailure):
            logger.warning("Query embedding unavailable: %s", results[0].reason)
            return EMPTY_VECTOR
        vector = vector_of(results[0])
        if dimension is not None and vector.size != dimension:
            logger.warning("Query embedding has %d dimensions, index has %d", vector.size, dimension)
            return EMPTY_VECTOR
        return vector

    def _load_feedback(self) -> tuple[dict[str, FeedbackCount], bool]:
        try:
            return dict(self.feedback_source.aggregate()), True
        except Exception:
            logger.warning("Feedback aggregation failed, ranking by similarity only", exc_info=True)
            return {}, False
