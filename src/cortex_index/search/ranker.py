"""
Scoring and ranking helpers for retrieval results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class SearchHit:
    """A ranked match for a stored embedding or a corpus document."""

    namespace: str
    id: str
    score: float
    matched_by: str
    preview: str = ""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return (a·b) / (‖a‖·‖b‖); 0.0 when either vector is all zeros."""
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions must match ({len(a)} != {len(b)})")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def rank_hits(
    hits: list[SearchHit],
    *,
    top_k: int,
    threshold: float | None = None,
) -> list[SearchHit]:
    """Drop hits below *threshold*, sort by score, and apply limit.

    The sort is stable, so equal scores keep their enumeration order.
    """
    if top_k < 1:
        raise ValueError(f"top_k must be >= 1, got {top_k}")
    if threshold is not None:
        hits = [hit for hit in hits if hit.score >= threshold]
    ordered = sorted(hits, key=lambda hit: -hit.score)
    return ordered[:top_k]
