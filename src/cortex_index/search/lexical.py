"""
Keyword matching over the original corpus text.

Used when embeddings are missing or the embedding backend cannot serve
the query, so retrieval degrades instead of failing.
"""

from __future__ import annotations

import logging
import re

from ..corpus import SCANNED_CATEGORIES, CorpusScanner
from .ranker import SearchHit, rank_hits

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 160


def query_terms(query: str, max_terms: int = 8) -> list[str]:
    terms = re.findall(r"[a-zA-Z0-9_]{3,}", query.lower())
    unique_terms: list[str] = []
    for term in terms:
        if term not in unique_terms:
            unique_terms.append(term)
        if len(unique_terms) >= max_terms:
            break
    if unique_terms:
        return unique_terms
    fallback = query.strip().lower()
    return [fallback] if fallback else []


def lexical_score(query: str, text: str) -> float:
    """Fraction of query terms found in *text*; 1.0 for a whole-query match."""
    lowered = text.lower()
    phrase = query.strip().lower()
    if phrase and phrase in lowered:
        return 1.0
    terms = query_terms(query)
    if not terms:
        return 0.0
    matched = sum(1 for term in terms if term in lowered)
    return matched / len(terms)


def _preview(query: str, text: str) -> str:
    terms = query_terms(query)
    for line in text.split("\n"):
        lowered = line.lower()
        if any(term in lowered for term in terms):
            return line.strip()[:_PREVIEW_CHARS]
    return ""


class LexicalSearcher:
    """Rank corpus documents by substring matches of the query terms."""

    def __init__(self, scanner: CorpusScanner) -> None:
        self.scanner = scanner

    def search(
        self,
        query: str,
        *,
        namespaces: list[str],
        top_k: int = 10,
    ) -> list[SearchHit]:
        scope = set(namespaces)
        hits: list[SearchHit] = []
        for category in SCANNED_CATEGORIES:
            for source in self.scanner.iter_sources(category):
                if source.namespace not in scope:
                    continue
                try:
                    text = source.read().raw_text
                except (OSError, ValueError) as exc:
                    logger.warning("Cannot read %s: %s", source.path, exc)
                    continue
                score = lexical_score(query, text)
                if score > 0:
                    hits.append(
                        SearchHit(
                            namespace=source.namespace,
                            id=source.id,
                            score=score,
                            matched_by="lexical",
                            preview=_preview(query, text),
                        )
                    )
        return rank_hits(hits, top_k=top_k)
