from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AggregationConfig:
    """
    Configuration for the feedback aggregation job.
    """

    data_dir: Path = Path("winefinder/data")
    raw_filename: str = "feedback.json"
    aggregated_filename: str = "feedback_aggregated.json"

    @property
    def raw_path(self) -> Path:
        return self.data_dir / self.raw_filename

    @property
    def aggregated_path(self) -> Path:
        return self.data_dir / self.aggregated_filename


DEFAULT_AGGREGATION_CONFIG = AggregationConfig()
