from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from winefinder.analytics.feedback import FeedbackCount
from winefinder.analytics.store import clear_events
from winefinder.embeddings.results import EmbeddingFailure, EmbeddingSuccess
from winefinder.recommendations.data_store import CatalogSource


class FakeProvider:
    """Deterministic embeddings keyed by text.

    Texts not in *vectors* get ``default`` (a failure when ``default`` is
    None). Calls are counted; ``delay`` slows every call down.
    """

    def __init__(self, vectors=None, default=None, delay: float = 0.0) -> None:
        self.vectors = dict(vectors or {})
        self.default = default
        self.delay = delay
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def embed(self, texts):
        with self._lock:
            self.calls.append(list(texts))
        if self.delay:
            time.sleep(self.delay)
        results = []
        for text in texts:
            vec = self.vectors.get(text, self.default)
            results.append(EmbeddingSuccess(tuple(vec)) if vec is not None else EmbeddingFailure("unknown text"))
        return results


class StaticFeedback:
    def __init__(self, counts=None, error: Exception | None = None) -> None:
        self.counts = {k: FeedbackCount(*v) for k, v in (counts or {}).items()}
        self.error = error

    def aggregate(self):
        if self.error is not None:
            raise self.error
        return self.counts


def write_catalog(path: Path, wines: list[dict]) -> Path:
    path.write_text(json.dumps(wines), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def catalog_factory(tmp_path):
    def _make(partitions: dict[str, list[dict]], default_language: str | None = None) -> CatalogSource:
        paths = {
            lang: write_catalog(tmp_path / f"wines_{lang}.json", wines)
            for lang, wines in partitions.items()
        }
        return CatalogSource(paths, default_language=default_language or next(iter(partitions)))

    return _make


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def feedback_factory():
    return StaticFeedback
