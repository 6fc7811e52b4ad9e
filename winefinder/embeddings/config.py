from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

PROVIDERS = ("openai", "sentence-transformers", "none")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class EmbeddingConfig:
    provider: str = os.getenv("WINEFINDER_EMBEDDING_PROVIDER", "openai").strip().lower()
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    model_name: str = os.getenv("WINEFINDER_EMBEDDING_MODEL", "text-embedding-3-small")
    local_model_name: str = "all-MiniLM-L6-v2"
    timeout: float = _env_float("WINEFINDER_EMBEDDING_TIMEOUT", 10.0)
    max_retries: int = 2
    batch_size: int = 256

    def __post_init__(self) -> None:
        provider = str(self.provider).strip().lower()
        if provider not in PROVIDERS:
            logger.warning("Unknown embedding provider %r, semantic search disabled", self.provider)
            provider = "none"
        object.__setattr__(self, "provider", provider)

    @property
    def enabled(self) -> bool:
        """True when semantic search has a usable provider configured."""
        if self.provider == "openai":
            return bool(self.api_key)
        return self.provider == "sentence-transformers"


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
