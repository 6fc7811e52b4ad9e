"""
Wine search and feedback reranking engine.

Responsibilities:
- Load the wine catalog per language partition.
- Build and cache one embedding index per language, once, shared by all
  concurrent requests.
- Rank wines by query similarity, then rerank the best candidates with
  aggregated like/dislike feedback.
- Fall back to keyword matching when semantic search is not configured.
"""
