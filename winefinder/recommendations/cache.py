from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..embeddings.encoder import EmbeddingProvider
from ..embeddings.results import EmbeddingFailure, EmbeddingResult, EmbeddingSuccess, to_result, vector_of
from .data_store import CatalogSource
from .models import Wine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class LanguageIndex:
    """Wines of one language partition with their embeddings.

    ``embeddings[i]`` belongs to ``items[i]``; a wine whose embedding could
    not be produced has an empty vector and its reason in ``failures``.
Every non-empty embedding has ``dimension`` entries.
    """

    language: str
    version: Any
    items: tuple[Wine, ...]
    embeddings: tuple[np.ndarray, ...]
    failures: dict[int, str] = field(default_factory=dict)
    dimension: int | None = None

    def __post_init__(self) -> None:
        if len(self.items) != len(self.embeddings):
            raise ValueError(
                f"index for {self.language!r} has {len(self.items)} items "
                f"but {len(self.embeddings)} embeddings"
            )

    def __len__(self) -> int:
        return len(self.items)


def _align(results: list[EmbeddingResult], expected: int) -> list[EmbeddingResult]:
    if len(results) == expected:
        return results
    logger.warning("Provider returned %d results for %d documents", len(results), expected)
    padded = list(results[:expected])
    padded.extend(EmbeddingFailure("missing from provider response") for _ in range(expected - len(padded)))
    return padded


def _enforce_dimension(results: list[EmbeddingResult]) -> tuple[list[EmbeddingResult], int | None]:
    """Fix the index dimension from the first vector; other lengths become failures."""
    dimension = next((len(r.vector) for r in results if isinstance(r, EmbeddingSuccess)), None)
    if dimension is None:
        return results, None
    checked = [to_result(r.vector, dimension) if isinstance(r, EmbeddingSuccess) else r for r in results]
    return checked, dimension


class LanguageIndexCache:
    """Builds each language index once and shares it between callers.

    The first ``get`` for a language submits the build to the cache's own
    executor; concurrent callers wait on the same future. Builds run to
    completion even if the caller that started them stops waiting. An entry
    is rebuilt when the catalog version of its language changes or after
    ``invalidate``.
    """

    def __init__(
        self,
        catalog: CatalogSource,
        provider: EmbeddingProvider,
        max_workers: int = 2,
    ) -> None:
        self.catalog = catalog
        self.provider = provider
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="index-build")
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[Any, Future]] = {}
        self._builds = 0
        self._hits = 0

    def get(self, language: str | None, timeout: float | None = None) -> LanguageIndex:
        key = self.catalog.resolve_language(language)
        version = self.catalog.version(key)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] == version:
                future = entry[1]
                self._hits += 1
            else:
                if entry is not None:
                    logger.info("Catalog for %r changed, rebuilding its index", key)
                future = self._executor.submit(self._build, key, version)
                self._entries[key] = (version, future)
                self._builds += 1

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise
        except Exception:
            with self._lock:
                current = self._entries.get(key)
                if current is not None and current[1] is future:
                    del self._entries[key]
            raise

    def _build(self, language: str, version: Any) -> LanguageIndex:
        start = time.time()
        wines = self.catalog.load(language)
        documents = [wine.document() for wine in wines]

        if documents:
            try:
                results = self.provider.embed(documents)
            except Exception as exc:
                logger.warning("Embedding provider failed while indexing %r", language, exc_info=True)
                results = [EmbeddingFailure(f"provider error: {type(exc).__name__}")] * len(documents)
            results, dimension = _enforce_dimension(_align(results, len(documents)))
        else:
            results, dimension = [], None

        failures = {
            i: r.reason for i, r in enumerate(results) if isinstance(r, EmbeddingFailure)
        }
        index = LanguageIndex(
            language=language,
            version=version,
            items=tuple(wines),
            embeddings=tuple(vector_of(r) for r in results),
            failures=failures,
            dimension=dimension,
        )
        elapsed_ms = round((time.time() - start) * 1000, 1)
        if failures:
            logger.warning(
                "Built %r index with %d of %d wines unembedded in %sms",
                language, len(failures), len(index), elapsed_ms,
            )
        else:
            logger.info("Built %r index with %d wines in %sms", language, len(index), elapsed_ms)
        return index

    def invalidate(self, language: str | None = None) -> list[str]:
        """Drop one cached language (or all of them); returns the dropped keys.

        Callers already waiting on a dropped build still receive its result.
        Raises ``KeyError`` for a language with no catalog partition.
        """
        with self._lock:
            if language is None:
                dropped = list(self._entries)
                self._entries.clear()
            else:
                key = language.strip().lower()
                if key not in self.catalog.languages:
                    raise KeyError(language)
                dropped = [key] if self._entries.pop(key, None) is not None else []
        if dropped:
            logger.info("Invalidated index cache for %s", ", ".join(dropped))
        return dropped

    def stats(self) -> dict:
        with self._lock:
            ready = sorted(k for k, (_, f) in self._entries.items() if f.done() and f.exception() is None)
            building = sorted(k for k, (_, f) in self._entries.items() if not f.done())
            return {
                "builds": self._builds,
                "hits": self._hits,
                "ready": ready,
                "building": building,
            }

    def close(self) -> None:
        self._executor.shutdown(wait=True)
