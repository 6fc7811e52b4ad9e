"""
Embeddings layer for semantic wine search.

Responsibilities:
- Turn batches of wine documents and queries into vectors through an
  embedding provider (OpenAI API or a local sentence-transformer).
- Report per-text success or failure instead of aborting a batch.
- Provide cosine similarity scores for candidate ranking.
"""
