from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from pydantic import ValidationError

from ..recommendations.models import AggregatedFeedbackRow

logger = logging.getLogger(__name__)

FEEDBACK_KINDS = ("like", "dislike")


@dataclass(frozen=True)
class FeedbackCount:
    likes: int = 0
    dislikes: int = 0

    @property
    def score(self) -> int:
        return self.likes - self.dislikes


class FeedbackSource(Protocol):
    def aggregate(self) -> dict[str, FeedbackCount]:
        """Likes/dislikes per wine id."""
        ...


def aggregate_records(records: Iterable[Mapping[str, Any]]) -> dict[str, FeedbackCount]:
    """Count likes and dislikes per wine from raw feedback records.

    Records carry ``wineId`` and ``feedback``; unknown feedback values still
    register the wine, with no count.
    """
    counts: dict[str, list[int]] = {}
    for record in records:
        wine_id = record.get("wineId")
        if wine_id is None:
            continue
        tally = counts.setdefault(str(wine_id), [0, 0])
        kind = record.get("feedback")
        if kind == "like":
            tally[0] += 1
        elif kind == "dislike":
            tally[1] += 1
    return {wine_id: FeedbackCount(likes, dislikes) for wine_id, (likes, dislikes) in counts.items()}


def to_rows(counts: Mapping[str, FeedbackCount]) -> list[dict[str, Any]]:
    return [
        {"wineId": wine_id, "likes": c.likes, "dislikes": c.dislikes}
        for wine_id, c in sorted(counts.items())
    ]


class FeedbackStore:
    """Raw like/dislike records, optionally mirrored to a JSON file."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._records: list[dict[str, Any]] = []
        if self.path is not None and self.path.exists():
            self._records = self._read_existing(self.path)

    @staticmethod
    def _read_existing(path: Path) -> list[dict[str, Any]]:
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Could not read feedback file %s, starting empty", path, exc_info=True)
            return []
        if not isinstance(records, list):
            logger.warning("Feedback file %s does not hold a list, starting empty", path)
            return []
        records = [r for r in records if isinstance(r, dict)]
        logger.info("Loaded %d feedback records from %s", len(records), path)
        return records

    def record(self, user_id: str, wine_id: str, feedback: str) -> dict[str, Any]:
        if feedback not in FEEDBACK_KINDS:
            raise ValueError(f"unknown feedback kind {feedback!r}")
        entry = {
            "userId": user_id,
            "wineId": str(wine_id),
            "feedback": feedback,
            "timestamp": time.time(),
        }
        with self._lock:
            self._records.append(entry)
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(self._records, indent=2), encoding="utf-8")
        return entry

    def records(self) -> list[dict[str, Any]]:
        """Newest first."""
        with self._lock:
            return sorted(self._records, key=lambda r: r.get("timestamp", 0), reverse=True)

    def aggregate(self) -> dict[str, FeedbackCount]:
        with self._lock:
            snapshot = list(self._records)
        return aggregate_records(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class JsonFeedbackSource:
    """Aggregated feedback rows (``{wineId, likes, dislikes}``) read from a file.

    The file is re-read on every call so a running service picks up the
    output of the aggregation job.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def aggregate(self) -> dict[str, FeedbackCount]:
        rows = json.loads(self.path.read_text(encoding="utf-8"))
        counts: dict[str, FeedbackCount] = {}
        for raw in rows:
            try:
                row = AggregatedFeedbackRow.model_validate(raw)
            except ValidationError:
                logger.warning("Skipping malformed feedback row %r", raw)
                continue
            counts[row.wine_id] = FeedbackCount(row.likes, row.dislikes)
        return counts
