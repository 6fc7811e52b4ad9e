from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NORMALIZATION_MODES = ("global", "candidates")

_DEFAULTS = {
    "alpha": 0.8,
    "beta": 0.2,
    "top_k": 15,
    "first_stage_cap": 50,
    "feedback_normalization": "global",
}


def _env(name: str, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


@dataclass(frozen=True)
class RankingConfig:
    """Weights and cut-offs of the two-stage ranking.

    Malformed values (unparseable, non-finite, non-positive counts, unknown
    normalisation mode) are replaced by the defaults with a warning.
    ``feedback_normalization`` chooses whether feedback scores are divided
    by the largest |likes - dislikes| over the whole catalog ("global") or
    over the first-stage candidates only ("candidates").
    """

    alpha: float = _env("RE_RANK_ALPHA", 0.8)
    beta: float = _env("RE_RANK_BETA", 0.2)
    top_k: int = _env("WINEFINDER_TOP_K", 15)
    first_stage_cap: int = _env("WINEFINDER_FIRST_STAGE_CAP", 50)
    feedback_normalization: str = _env("WINEFINDER_FEEDBACK_NORMALIZATION", "global")

    def __post_init__(self) -> None:
        object.__setattr__(self, "alpha", self._weight("alpha"))
        object.__setattr__(self, "beta", self._weight("beta"))
        object.__setattr__(self, "top_k", self._count("top_k"))
        object.__setattr__(self, "first_stage_cap", self._count("first_stage_cap"))
        mode = str(self.feedback_normalization).strip().lower()
        if mode not in NORMALIZATION_MODES:
            mode = self._fallback("feedback_normalization", self.feedback_normalization)
        object.__setattr__(self, "feedback_normalization", mode)

    def _fallback(self, name: str, raw):
        default = _DEFAULTS[name]
        logger.warning("Invalid ranking setting %s=%r, using default %r", name, raw, default)
        return default

    def _weight(self, name: str) -> float:
        raw = getattr(self, name)
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return self._fallback(name, raw)
        if not math.isfinite(value):
            return self._fallback(name, raw)
        return value

    def _count(self, name: str) -> int:
        raw = getattr(self, name)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return self._fallback(name, raw)
        if value < 1:
            return self._fallback(name, raw)
        return value


DEFAULT_RANKING_CONFIG = RankingConfig()
