from __future__ import annotations

import os
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Literal

from fastapi import Depends, FastAPI, HTTPException, Query

from .analytics.aggregator import compute_analytics
from .analytics.feedback import FeedbackSource, FeedbackStore, JsonFeedbackSource, to_rows
from .analytics.store import get_events
from .recommendations.data_store import CatalogSource
from .recommendations.models import (
    FeedbackRequest,
    FeedbackResponse,
    ScoredWine,
)
from .recommendations.retrieval import SearchService, build_search_service


# ── Service wiring ───────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_catalog() -> CatalogSource:
    return CatalogSource()


@lru_cache(maxsize=1)
def get_feedback_store() -> FeedbackStore:
    return FeedbackStore(os.environ.get("WINEFINDER_FEEDBACK_PATH") or None)


def _ranking_feedback_source() -> FeedbackSource:
    # Deployments running the aggregation job rank from its output file.
    aggregated = os.environ.get("WINEFINDER_AGGREGATED_FEEDBACK_PATH")
    if aggregated:
        return JsonFeedbackSource(aggregated)
    return get_feedback_store()


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return build_search_service(get_catalog(), _ranking_feedback_source())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # only services that were actually built own index threads
    if get_search_service.cache_info().currsize:
        get_search_service().close()
        get_search_service.cache_clear()


app = FastAPI(title="Wine Recommendation API", version="1.0.0", lifespan=lifespan)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health(catalog: CatalogSource = Depends(get_catalog)) -> dict:
    return {"status": "ok", "languages": catalog.languages}


@app.get(
    "/wines",
    response_model=list[ScoredWine],
    response_model_exclude_none=True,
)
def wines(
    lang: str | None = Query(default=None, description="Catalog language (en, fr, nl)"),
    q: str | None = Query(default=None, description="Free-text search"),
    service: SearchService = Depends(get_search_service),
) -> list[ScoredWine]:
    return service.search(lang, q)


@app.post("/feedback", response_model=FeedbackResponse)
def feedback(
    body: FeedbackRequest,
    store: FeedbackStore = Depends(get_feedback_store),
) -> FeedbackResponse:
    store.record(body.user_id, body.wine_id, body.feedback)
    return FeedbackResponse(status="recorded", total_feedback=len(store.records()))


@app.get("/feedback")
def feedback_list(
    kind: Literal["raw", "agg"] = Query(default="raw", alias="type"),
    store: FeedbackStore = Depends(get_feedback_store),
) -> list[dict]:
    if kind == "agg":
        return to_rows(store.aggregate())
    return store.records()


@app.get("/feedback/stats")
def feedback_stats(store: FeedbackStore = Depends(get_feedback_store)) -> dict:
    fb = store.records()
    likes = sum(1 for f in fb if f["feedback"] == "like")
    dislikes = len(fb) - likes
    return {
        "total": len(fb),
        "likes": likes,
        "dislikes": dislikes,
        "like_rate": round(likes / len(fb) * 100, 1) if fb else 0.0,
    }


# ── Operational endpoints ────────────────────────────────────────────────


@app.get("/analytics")
def analytics(store: FeedbackStore = Depends(get_feedback_store)) -> dict:
    return compute_analytics(get_events(), store.records())


@app.get("/index/stats")
def index_stats(service: SearchService = Depends(get_search_service)) -> dict:
    if service.pipeline is None:
        return {"semantic_enabled": False}
    return {
        "semantic_enabled": True,
        "languages": service.catalog.languages,
        **service.pipeline.index_cache.stats(),
    }


@app.delete("/index/{lang}")
def invalidate_index(lang: str, service: SearchService = Depends(get_search_service)) -> dict:
    if service.pipeline is None:
        raise HTTPException(status_code=409, detail="Semantic search is not configured")
    try:
        dropped = service.pipeline.index_cache.invalidate(None if lang == "all" else lang)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No catalog for language {lang!r}")
    return {"invalidated": dropped}
