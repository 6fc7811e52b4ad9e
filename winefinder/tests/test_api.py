from __future__ import annotations

import json
from functools import lru_cache

import pytest
from fastapi.testclient import TestClient

import winefinder.app as app_module
from winefinder.app import app, get_search_service
from winefinder.recommendations.data_store import CatalogSource
from winefinder.recommendations.retrieval import SearchService, build_search_service

client = TestClient(app)

WINES = [
    {"id": 1, "Product_name": "Chardonnay Blanc", "Price": "€12", "promotion": None},
    {"id": 2, "Product_name": "Merlot Rouge", "Price": "€9", "promotion": "-10%"},
]


@pytest.fixture
def use_service():
    def _install(service: SearchService) -> SearchService:
        app.dependency_overrides[get_search_service] = lambda: service
        return service

    yield _install
    app.dependency_overrides.pop(get_search_service, None)


@pytest.fixture
def catalog(tmp_path) -> CatalogSource:
    path = tmp_path / "wines_fr.json"
    path.write_text(json.dumps(WINES), encoding="utf-8")
    return CatalogSource({"fr": path}, default_language="fr")


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "languages": ["en", "fr", "nl"]}


def test_wines_lists_partition_with_catalog_field_names(use_service, catalog):
    use_service(SearchService(catalog))

    resp = client.get("/wines", params={"lang": "fr"})

    assert resp.status_code == 200
    body = resp.json()
    assert [w["id"] for w in body] == ["1", "2"]
    assert body[0]["Product_name"] == "Chardonnay Blanc"
    assert "finalScore" not in body[0]
    assert "promotion" not in body[0]


def test_wines_keyword_search(use_service, catalog):
    use_service(SearchService(catalog))

    body = client.get("/wines", params={"lang": "fr", "q": "rouge"}).json()

    assert [w["id"] for w in body] == ["2"]


def test_wines_semantic_search_returns_scores(use_service, catalog, provider_factory, feedback_factory):
    provider = provider_factory({
        "blanc": [1.0, 0.0],
        "Chardonnay Blanc. . ": [1.0, 0.0],
        "Merlot Rouge. . ": [0.0, 1.0],
    })
    use_service(build_search_service(catalog, feedback_factory(), provider=provider))

    body = client.get("/wines", params={"lang": "fr", "q": "blanc"}).json()

    assert [w["id"] for w in body] == ["1", "2"]
    assert body[0]["similarity"] == pytest.approx(1.0)
    assert body[0]["feedbackScore"] == 0
    assert body[0]["finalScore"] == pytest.approx(0.8)


def test_index_stats_and_invalidate(use_service, catalog, provider_factory, feedback_factory):
    provider = provider_factory(default=[1.0, 0.0])
    use_service(build_search_service(catalog, feedback_factory(), provider=provider))

    client.get("/wines", params={"lang": "fr", "q": "blanc"})
    stats = client.get("/index/stats").json()
    dropped = client.delete("/index/fr").json()
    client.get("/wines", params={"lang": "fr", "q": "blanc"})

    assert stats["semantic_enabled"] is True
    assert stats["ready"] == ["fr"]
    assert stats["languages"] == ["fr"]
    assert dropped == {"invalidated": ["fr"]}
    assert client.get("/index/stats").json()["builds"] == 2


def test_invalidate_without_semantic_search(use_service, catalog):
    use_service(SearchService(catalog))

    assert client.get("/index/stats").json() == {"semantic_enabled": False}
    assert client.delete("/index/fr").status_code == 409


def test_invalidate_unknown_language_is_not_found(use_service, catalog, provider_factory, feedback_factory):
    provider = provider_factory(default=[1.0, 0.0])
    use_service(build_search_service(catalog, feedback_factory(), provider=provider))
    client.get("/wines", params={"lang": "fr", "q": "blanc"})

    resp = client.delete("/index/xx")

    assert resp.status_code == 404
    assert client.get("/index/stats").json()["ready"] == ["fr"]


def test_shutdown_closes_index_builders(monkeypatch, catalog, provider_factory, feedback_factory):
    service = build_search_service(catalog, feedback_factory(), provider=provider_factory(default=[1.0, 0.0]))
    monkeypatch.setattr(app_module, "get_search_service", lru_cache(maxsize=1)(lambda: service))
    app_module.get_search_service()

    with TestClient(app):
        pass

    with pytest.raises(RuntimeError):
        service.pipeline.index_cache.get("fr")
