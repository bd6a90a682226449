"""
Vector-based semantic search engine.

Embeds a query and ranks cached embeddings via cosine similarity,
falling back to keyword matching when embeddings are unavailable.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .lexical import LexicalSearcher
from .ranker import SearchHit, cosine_similarity, rank_hits
from ..corpus import SCANNED_CATEGORIES, Category, CorpusScanner, namespace_for
from ..embeddings import EmbeddingBackend, EmbeddingError
from ..storage import EmbeddingStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10
DEFAULT_THRESHOLD = 0.4


class SemanticSearchEngine:
    """Embed a query and search stored embeddings."""

    def __init__(
        self,
        store: EmbeddingStore,
        backend: EmbeddingBackend | None,
        *,
        scanner: CorpusScanner | None = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.scanner = scanner

    def resolve_scope(
        self,
        *,
        project: str | None = None,
        categories: Iterable[Category] | None = None,
    ) -> list[str]:
        """Return the namespaces covering *project* and *categories*.

        Without a project or a scanner to list projects, every namespace in
        the store is returned.
        """
        if project is None and self.scanner is None:
            return self.store.namespaces()

        selected = tuple(categories) if categories is not None else SCANNED_CATEGORIES
        namespaces: list[str] = []
        for category in selected:
            if category is Category.ARCHIVE:
                projects = [""]
            elif project is not None:
                projects = [project]
            else:
                projects = self.scanner.list_projects(category)
            for name in projects:
                namespace = namespace_for(category, name)
                if namespace not in namespaces:
                    namespaces.append(namespace)
        return namespaces

    def search(
        self,
        query: str,
        *,
        scope: str | Sequence[str],
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchHit]:
        """Return hits scoring at least *threshold*, best first."""
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")
        namespaces = [scope] if isinstance(scope, str) else list(scope)
        records = [
            record for namespace in namespaces for record in self.store.enumerate(namespace)
        ]
        if not records:
            logger.info("No embeddings in scope, using keyword search")
            return self._lexical(query, namespaces, top_k)
        if self.backend is None:
            return self._lexical(query, namespaces, top_k)

        try:
            query_embedding = self.backend.embed_query(query)
        except EmbeddingError as exc:
            logger.warning("Embedding backend failed, using keyword search: %s", exc)
            return self._lexical(query, namespaces, top_k)

        stored_dim = self.store.dimension()
        if stored_dim is not None and len(query_embedding) != stored_dim:
            logger.warning(
                "Query embedding has dimension %d but the store uses %d "
                "(was it indexed with another backend?), using keyword search",
                len(query_embedding),
                stored_dim,
            )
            return self._lexical(query, namespaces, top_k)

        hits = [
            SearchHit(
                namespace=record.namespace,
                id=record.id,
                score=cosine_similarity(record.vector, query_embedding),
                matched_by="semantic",
            )
            for record in records
        ]
        return rank_hits(hits, top_k=top_k, threshold=threshold)

    def _lexical(self, query: str, namespaces: list[str], top_k: int) -> list[SearchHit]:
        if self.scanner is None:
            logger.warning("No corpus scanner configured, keyword search unavailable")
            return []
        return LexicalSearcher(self.scanner).search(
            query,
            namespaces=namespaces,
            top_k=top_k,
        )
