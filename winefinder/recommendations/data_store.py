from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Mapping

import pandas as pd

from .models import Wine

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

DEFAULT_CATALOG_PATHS: dict[str, Path] = {
    "en": _DATA_DIR / "wines_en.json",
    "fr": _DATA_DIR / "wines_fr.json",
    "nl": _DATA_DIR / "wines_nl.json",
}
DEFAULT_LANGUAGE = "fr"

_TEXT_COLUMNS = ["Product_name", "Wine_Description", "Wine_Varieties"]


def _load(path: Path) -> list[Wine]:
    df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    for col in _TEXT_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    df[_TEXT_COLUMNS] = df[_TEXT_COLUMNS].fillna("").astype(str)

    records = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    return [Wine.model_validate(record) for record in records]


class CatalogSource:
    """Static wine catalog, one JSON file per language partition."""

    def __init__(
        self,
        paths: Mapping[str, Path | str] | None = None,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self.paths = {k.lower(): Path(v) for k, v in (paths or DEFAULT_CATALOG_PATHS).items()}
        if default_language not in self.paths:
            raise ValueError(f"default language {default_language!r} has no catalog file")
        self.default_language = default_language
        self._lock = threading.Lock()
        self._loaded: dict[str, tuple[tuple[int, int], list[Wine]]] = {}

    @property
    def languages(self) -> list[str]:
        return sorted(self.paths)

    def resolve_language(self, language: str | None) -> str:
        """Map a requested language onto a known partition."""
        key = (language or "").strip().lower()
        return key if key in self.paths else self.default_language

    def version(self, language: str | None) -> tuple[int, int]:
        """Changes whenever the partition's file is rewritten."""
        stat = self.paths[self.resolve_language(language)].stat()
        return (stat.st_mtime_ns, stat.st_size)

    def load(self, language: str | None) -> list[Wine]:
        """Return the wines of a partition, reading the file once per version."""
        key = self.resolve_language(language)
        version = self.version(key)
        with self._lock:
            cached = self._loaded.get(key)
            if cached is not None and cached[0] == version:
                return list(cached[1])
            wines = _load(self.paths[key])
            logger.info("Loaded %d wines for %r from %s", len(wines), key, self.paths[key])
            self._loaded[key] = (version, wines)
            return list(wines)
