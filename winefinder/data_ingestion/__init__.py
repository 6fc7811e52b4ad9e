"""
Offline feedback aggregation.

Responsibilities:
- Read raw like/dislike records written by the feedback endpoint.
- Count likes and dislikes per wine.
- Persist the aggregated rows for the search service's feedback source.
"""
