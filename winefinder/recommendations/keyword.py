from __future__ import annotations

from typing import Iterable

from .models import Wine


def keyword_search(wines: Iterable[Wine], query: str) -> list[Wine]:
    """Wines whose name, description or varieties contain *query*, case-insensitively.

    Catalog order is kept; no scoring.
    """
    needle = query.lower()
    return [
        wine for wine in wines
        if needle in wine.name.lower()
        or needle in wine.description.lower()
        or needle in wine.varieties.lower()
    ]
