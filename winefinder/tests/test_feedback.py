from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from winefinder.analytics.feedback import (
    FeedbackCount,
    FeedbackStore,
    JsonFeedbackSource,
    aggregate_records,
    to_rows,
)
from winefinder.app import app, get_feedback_store

client = TestClient(app)
store = FeedbackStore()


@pytest.fixture(autouse=True)
def _use_fresh_store():
    store.clear()
    app.dependency_overrides[get_feedback_store] = lambda: store
    yield
    app.dependency_overrides.pop(get_feedback_store, None)


def test_aggregate_records_counts_per_wine():
    counts = aggregate_records([
        {"wineId": "1", "feedback": "like"},
        {"wineId": "1", "feedback": "like"},
        {"wineId": "1", "feedback": "dislike"},
        {"wineId": 2, "feedback": "dislike"},
        {"feedback": "like"},
    ])
    assert counts == {"1": FeedbackCount(2, 1), "2": FeedbackCount(0, 1)}
    assert counts["1"].score == 1
    assert to_rows(counts) == [
        {"wineId": "1", "likes": 2, "dislikes": 1},
        {"wineId": "2", "likes": 0, "dislikes": 1},
    ]


def test_store_rejects_unknown_feedback_kind():
    with pytest.raises(ValueError):
        FeedbackStore().record("u1", "1", "meh")


def test_store_mirrors_records_to_file(tmp_path):
    path = tmp_path / "feedback.json"
    first = FeedbackStore(path)
    first.record("u1", "42", "like")

    reopened = FeedbackStore(path)

    assert reopened.aggregate() == {"42": FeedbackCount(1, 0)}
    assert json.loads(path.read_text())[0]["userId"] == "u1"


def test_json_source_skips_malformed_rows(tmp_path):
    path = tmp_path / "feedback_aggregated.json"
    path.write_text(json.dumps([
        {"wineId": "1", "likes": 4, "dislikes": 1},
        {"wineId": "2", "likes": -3, "dislikes": 0},
        {"likes": 1},
        {"wineId": 3, "likes": "2"},
    ]))

    counts = JsonFeedbackSource(path).aggregate()

    assert counts == {"1": FeedbackCount(4, 1), "3": FeedbackCount(2, 0)}


def test_json_source_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        JsonFeedbackSource(tmp_path / "nope.json").aggregate()


def test_feedback_records_like():
    resp = client.post("/feedback", json={"userId": "u1", "wineId": 42, "feedback": "like"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "recorded", "total_feedback": 1}
    assert store.aggregate() == {"42": FeedbackCount(1, 0)}


def test_feedback_validation_rejects_unknown_kind():
    resp = client.post("/feedback", json={"userId": "u1", "wineId": "42", "feedback": "love"})
    assert resp.status_code == 422


def test_feedback_validation_rejects_empty_wine_id():
    resp = client.post("/feedback", json={"userId": "u1", "wineId": "", "feedback": "like"})
    assert resp.status_code == 422


def test_feedback_listing_raw_and_aggregated():
    client.post("/feedback", json={"userId": "u1", "wineId": "1", "feedback": "like"})
    client.post("/feedback", json={"userId": "u2", "wineId": "1", "feedback": "dislike"})
    client.post("/feedback", json={"userId": "u2", "wineId": "2", "feedback": "like"})

    raw = client.get("/feedback").json()
    agg = client.get("/feedback", params={"type": "agg"}).json()

    assert len(raw) == 3
    assert {r["userId"] for r in raw} == {"u1", "u2"}
    assert agg == [
        {"wineId": "1", "likes": 1, "dislikes": 1},
        {"wineId": "2", "likes": 1, "dislikes": 0},
    ]


def test_feedback_stats():
    client.post("/feedback", json={"userId": "u1", "wineId": "1", "feedback": "like"})
    client.post("/feedback", json={"userId": "u1", "wineId": "2", "feedback": "like"})
    client.post("/feedback", json={"userId": "u1", "wineId": "3", "feedback": "dislike"})

    body = client.get("/feedback/stats").json()

    assert body["total"] == 3
    assert body["likes"] == 2
    assert body["dislikes"] == 1
    assert body["like_rate"] == 66.7


@pytest.mark.parametrize("content", ["{not json", json.dumps({"wineId": "1"})])
def test_store_starts_empty_from_unreadable_file(tmp_path, content):
    path = tmp_path / "feedback.json"
    path.write_text(content)

    recovered = FeedbackStore(path)
    recovered.record("u1", "7", "dislike")

    assert recovered.aggregate() == {"7": FeedbackCount(0, 1)}
    assert len(json.loads(path.read_text())) == 1
