"""Search helpers for the embedding cache."""

from .lexical import LexicalSearcher, lexical_score, query_terms
from .ranker import SearchHit, cosine_similarity, rank_hits
from .semantic import DEFAULT_THRESHOLD, DEFAULT_TOP_K, SemanticSearchEngine

__all__ = [
    "LexicalSearcher",
    "lexical_score",
    "query_terms",
    "SearchHit",
    "cosine_similarity",
    "rank_hits",
    "DEFAULT_THRESHOLD",
    "DEFAULT_TOP_K",
    "SemanticSearchEngine",
]
