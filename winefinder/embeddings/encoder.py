from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from openai import OpenAI

from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from .results import EmbeddingFailure, EmbeddingResult, EmbeddingSuccess, to_result

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    def embed(self, texts: list[str]) -> list[EmbeddingResult]:
        """Return one result per text, in input order."""
        ...


class OpenAIEmbeddingProvider:
    """Embed texts with the OpenAI embeddings API."""

    def __init__(
        self,
        config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
        client: Any | None = None,
    ) -> None:
        self.config = config
        if client is None:
            client = OpenAI(
                api_key=config.api_key,
                timeout=config.timeout,
                max_retries=config.max_retries,
            )
        self._client = client

    def embed(self, texts: list[str]) -> list[EmbeddingResult]:
        results: list[EmbeddingResult] = []
        batch_size = max(self.config.batch_size, 1)
        for start in range(0, len(texts), batch_size):
            results.extend(self._embed_batch(texts[start : start + batch_size]))
        return results

    def _embed_batch(self, batch: list[str]) -> list[EmbeddingResult]:
        try:
            response = self._client.embeddings.create(
                model=self.config.model_name,
                input=batch,
            )
        except Exception as exc:
            logger.warning(
                "Embedding request failed for %d texts, scoring them as unavailable",
                len(batch),
                exc_info=True,
            )
            return [EmbeddingFailure(f"request failed: {type(exc).__name__}")] * len(batch)

        by_position: dict[int, Any] = {}
        for item in getattr(response, "data", None) or []:
            index = getattr(item, "index", None)
            if isinstance(index, int) and 0 <= index < len(batch):
                by_position[index] = getattr(item, "embedding", None)

        results = [to_result(by_position.get(i)) for i in range(len(batch))]
        failed = sum(1 for r in results if isinstance(r, EmbeddingFailure))
        if failed:
            logger.warning("%d of %d embeddings missing or malformed", failed, len(batch))
        return results


class SentenceTransformerProvider:
    """Embed texts with a local sentence-transformers model."""

    def __init__(
        self,
        config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
        model: Any | None = None,
    ) -> None:
        self.config = config
        self._model = model
        self._lock = threading.Lock()

    def _get_model(self):
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info("Loading sentence-transformer model %s", self.config.local_model_name)
                self._model = SentenceTransformer(self.config.local_model_name)
            return self._model

    def embed(self, texts: list[str]) -> list[EmbeddingResult]:
        if not texts:
            return []
        try:
            model = self._get_model()
            matrix = model.encode(
                texts,
                batch_size=self.config.batch_size,
                show_progress_bar=False,
            )
        except Exception as exc:
            logger.warning("Local embedding failed for %d texts", len(texts), exc_info=True)
            return [EmbeddingFailure(f"encode failed: {type(exc).__name__}")] * len(texts)
        return [to_result(row) for row in matrix]


def build_provider(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> EmbeddingProvider | None:
    """Return the configured provider, or ``None`` when semantic search is off."""
    if not config.enabled:
        return None
    if config.provider == "sentence-transformers":
        return SentenceTransformerProvider(config)
    return OpenAIEmbeddingProvider(config)
