"""
Aggregate raw feedback records into per-wine like/dislike counts.

Usage:
    python -m winefinder.data_ingestion.aggregate_feedback
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from ..analytics.feedback import aggregate_records, to_rows
from .config import DEFAULT_AGGREGATION_CONFIG, AggregationConfig

logger = logging.getLogger(__name__)


def run_aggregation(config: AggregationConfig = DEFAULT_AGGREGATION_CONFIG) -> Path:
    """
    Execute the aggregation job.

    Steps:
    - Load raw ``{userId, wineId, feedback, timestamp}`` records.
    - Count likes and dislikes per wine.
    - Write ``[{wineId, likes, dislikes}]`` sorted by wine id.
    """
    records = json.loads(config.raw_path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{config.raw_path} must hold a JSON list of feedback records")

    rows = to_rows(aggregate_records(r for r in records if isinstance(r, dict)))

    output_path = config.aggregated_path
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
    logger.info("Aggregated %d wine feedback records into %s", len(rows), output_path)
    return output_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        path = run_aggregation()
    except (OSError, ValueError) as exc:
        logger.error("No feedback data found or invalid JSON: %s", exc)
        raise SystemExit(1)
    print(f"Aggregation complete. Counts saved to: {path}")
