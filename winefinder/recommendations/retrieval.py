from __future__ import annotations

import logging
import time

from ..analytics.feedback import FeedbackSource
from ..analytics.store import record_event
from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from ..embeddings.encoder import EmbeddingProvider, build_provider
from .cache import LanguageIndexCache
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .data_store import CatalogSource
from .keyword import keyword_search
from .models import ScoredWine, Wine
from .ranking import RankingOutcome, RankingPipeline

logger = logging.getLogger(__name__)


def _plain(wine: Wine) -> ScoredWine:
    return ScoredWine(**wine.model_dump())


class SearchService:
    """Entry point for wine search.

    With no query the whole language partition is returned. Otherwise the
    query goes to the ranking pipeline when semantic search is configured,
    and to keyword matching when it is not. A pipeline that degrades (failed
    embeddings, missing feedback) still answers; it never switches the
    request to keyword matching.
    """

    def __init__(self, catalog: CatalogSource, pipeline: RankingPipeline | None = None) -> None:
        self.catalog = catalog
        self.pipeline = pipeline

    @property
    def semantic_enabled(self) -> bool:
        return self.pipeline is not None

    def search(self, language: str | None = None, query: str | None = None) -> list[ScoredWine]:
        start_time = time.time()
        lang = self.catalog.resolve_language(language)
        query = (query or "").strip()
        outcome: RankingOutcome | None = None

        if not query:
            mode = "listing"
            results = [_plain(w) for w in self.catalog.load(lang)]
        elif self.pipeline is not None:
            mode = "semantic"
            outcome = self.pipeline.rank(lang, query)
            results = [
                ScoredWine(
                    **c.wine.model_dump(),
                    similarity=c.similarity,
                    feedback_score=c.feedback_score,
                    final_score=c.final_score,
                )
                for c in outcome.candidates
            ]
        else:
            mode = "keyword"
            results = [_plain(w) for w in keyword_search(self.catalog.load(lang), query)]

        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        record_event("search", {
            "mode": mode,
            "language": lang,
            "requested_language": language,
            "query": query or None,
            "results_returned": len(results),
            "response_time_ms": elapsed_ms,
            "query_embedding_failed": bool(outcome and outcome.query_embedding_failed),
            "feedback_unavailable": bool(outcome and outcome.feedback_unavailable),
            "unembedded_items": outcome.unembedded_items if outcome else 0,
        })
        if outcome and (outcome.query_embedding_failed or outcome.feedback_unavailable):
            logger.info(
                "Degraded semantic search for %r (query embedding failed=%s, feedback unavailable=%s)",
                query, outcome.query_embedding_failed, outcome.feedback_unavailable,
            )
        return results

    def close(self) -> None:
        """Stop the index builder threads, if semantic search is configured."""
        if self.pipeline is not None:
            self.pipeline.index_cache.close()


def build_search_service(
    catalog: CatalogSource,
    feedback_source: FeedbackSource,
    embedding_config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
    ranking_config: RankingConfig = DEFAULT_RANKING_CONFIG,
    provider: EmbeddingProvider | None = None,
) -> SearchService:
    """Wire a search service; semantic only when a provider is configured."""
    if provider is None:
        provider = build_provider(embedding_config)
    if provider is None:
        logger.info("No embedding provider configured, using keyword search")
        return SearchService(catalog)
    index_cache = LanguageIndexCache(catalog, provider)
    pipeline = RankingPipeline(index_cache, provider, feedback_source, ranking_config)
    return SearchService(catalog, pipeline)
