from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(
    events: list[dict[str, Any]],
    feedback: list[dict[str, Any]],
) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    mode_counter: Counter[str] = Counter(s.get("mode", "unknown") for s in searches)
    language_counter: Counter[str] = Counter(s.get("language", "unknown") for s in searches)

    query_counter: Counter[str] = Counter()
    for s in searches:
        if s.get("query"):
            query_counter[s["query"].lower()] += 1
    top_queries = [{"query": q, "count": c} for q, c in query_counter.most_common(10)]

    # Degraded semantic searches
    semantic = [s for s in searches if s.get("mode") == "semantic"]
    degraded = {
        "query_embedding_failed": sum(1 for s in semantic if s.get("query_embedding_failed")),
        "feedback_unavailable": sum(1 for s in semantic if s.get("feedback_unavailable")),
        "with_unembedded_items": sum(1 for s in semantic if s.get("unembedded_items", 0) > 0),
    }

    likes = sum(1 for f in feedback if f.get("feedback") == "like")
    dislikes = sum(1 for f in feedback if f.get("feedback") == "dislike")

    return {
        "total_searches": total,
        "avg_response_time_ms": avg_time,
        "searches_by_mode": dict(mode_counter),
        "searches_by_language": dict(language_counter),
        "top_queries": top_queries,
        "degraded_searches": degraded,
        "feedback_summary": {
            "total": len(feedback),
            "likes": likes,
            "dislikes": dislikes,
            "like_rate": round(likes / len(feedback) * 100, 1) if feedback else 0.0,
        },
    }
