"""
Indexing pipeline orchestration.

Scans each corpus category, decides skip vs. regenerate per document,
embeds the chunks of the documents that need it, and tallies the outcome.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable

from .chunker import Chunk, chunk_document
from ..corpus import (
    SCANNED_CATEGORIES,
    Category,
    CategoryUnreadableError,
    CorpusScanner,
    Document,
    DocumentSource,
)
from ..embeddings import BackendUnavailableError, EmbeddingBackend, EmbeddingError
from ..storage import EmbeddingStore, StoreError

logger = logging.getLogger(__name__)

# Failures scoped to a single document. Anything else propagates.
_DOCUMENT_ERRORS: tuple[type[BaseException], ...] = (
    EmbeddingError,
    StoreError,
    OSError,
    ValueError,
)


@dataclass(frozen=True)
class RunStats:
    """Document counts for one category (or a whole run)."""

    total: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0

    def __add__(self, other: RunStats) -> RunStats:
        return RunStats(
            total=self.total + other.total,
            processed=self.processed + other.processed,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )

    def summary(self) -> str:
        return (
            f"{self.processed} processed, {self.skipped} skipped, "
            f"{self.errors} errors ({self.total} total)"
        )


@dataclass(frozen=True)
class IndexingResult:
    """Summary output for an indexing run."""

    categories: dict[Category, RunStats] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def total(self) -> RunStats:
        return sum(self.categories.values(), RunStats())


def should_regenerate(force: bool, exists: bool) -> bool:
    """Return True when a document's embedding must be (re)computed."""
    return force or not exists


class IndexingPipeline:
    """Build and update the embedding cache from corpus documents."""

    def __init__(
        self,
        scanner: CorpusScanner,
        store: EmbeddingStore,
        backend: EmbeddingBackend,
        *,
        force: bool = False,
        max_workers: int = 4,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self.scanner = scanner
        self.store = store
        self.backend = backend
        self.force = force
        self._max_workers = max_workers

    def index_all(self, categories: Iterable[Category] | None = None) -> IndexingResult:
        """
        Index every scanned category and return per-category stats.

        Raises ``StorageRootError`` or ``BackendUnavailableError`` before any
        category is touched when the run cannot proceed at all.
        """
        selected = tuple(categories) if categories is not None else SCANNED_CATEGORIES
        self.scanner.check_root()
        if not self.backend.is_available():
            raise BackendUnavailableError(
                f"Embedding backend {self.backend.name!r} is unavailable"
            )

        logger.info("Storage root: %s", self.scanner.root)
        if self.force:
            logger.info("Force regenerate mode enabled")

        start = time.perf_counter()
        results: dict[Category, RunStats] = {}
        for category in selected:
            results[category] = self.index_category(category)
        result = IndexingResult(
            categories=results,
            duration=time.perf_counter() - start,
        )
        logger.info("Final summary: %s", result.total.summary())
        return result

    def index_category(self, category: Category) -> RunStats:
        """Index one category; never raises for per-document failures."""
        if not self.scanner.category_exists(category):
            logger.info("No %s directory found, skipping", category.label.lower())
            return RunStats()

        try:
            sources, listing_errors = self._collect_sources(category)
        except CategoryUnreadableError as exc:
            logger.error("Failed to process %s: %s", category.label.lower(), exc)
            return RunStats(errors=1)

        total = 0
        skipped = 0
        errors = listing_errors
        to_embed: list[DocumentSource] = []

        for source in sources:
            total += 1
            try:
                exists = self.store.exists(source.namespace, source.id)
            except StoreError as exc:
                logger.warning("Failed to check %s: %s", source.path, exc)
                errors += 1
                continue
            if not should_regenerate(self.force, exists):
                logger.debug("Skipping %s (already exists)", source.path)
                skipped += 1
                continue
            to_embed.append(source)

        processed, embed_errors = self._embed_and_store(to_embed)
        stats = RunStats(
            total=total,
            processed=processed,
            skipped=skipped,
            errors=errors + embed_errors,
        )
        logger.info("%s: %s", category.label, stats.summary())
        return stats

    def index_document(self, document: Document, *, force: bool = True) -> RunStats:
        """Re-embed one document, typically after it changed on disk."""
        try:
            exists = self.store.exists(document.namespace, document.id)
            if not should_regenerate(force, exists):
                return RunStats(total=1, skipped=1)
            self._store_chunks(self._embed_document(document))
        except _DOCUMENT_ERRORS as exc:
            logger.warning("Failed to index %s: %s", document.source_path, exc)
            return RunStats(total=1, errors=1)
        return RunStats(total=1, processed=1)

    def _collect_sources(self, category: Category) -> tuple[list[DocumentSource], int]:
        sources: list[DocumentSource] = []
        errors = 0
        projects = self.scanner.list_projects(category)
        logger.debug("Found %d projects: %s", len(projects), ", ".join(projects))
        for project in projects:
            try:
                project_sources = self.scanner.list_sources(category, project)
            except OSError as exc:
                logger.warning("Failed to process project %s: %s", project, exc)
                errors += 1
                continue
            logger.debug("Found %d documents in %s", len(project_sources), project)
            sources.extend(project_sources)
        if category is Category.ARCHIVE:
            sources.extend(self.scanner.list_loose_archives())
        return sources, errors

    def _embed_and_store(self, sources: list[DocumentSource]) -> tuple[int, int]:
        """Embed in parallel; store and tally on this thread as results arrive."""
        if not sources:
            return 0, 0

        processed = 0
        errors = 0
        executor = ThreadPoolExecutor(max_workers=self._max_workers)
        try:
            futures = {
                executor.submit(self._embed_source, source): source for source in sources
            }
            for future in as_completed(futures):
                source = futures[future]
                try:
                    pairs = future.result()
                    self._store_chunks(pairs)
                except _DOCUMENT_ERRORS as exc:
                    logger.warning("Failed to process %s: %s", source.path, exc)
                    errors += 1
                    continue
                processed += 1
                logger.debug("Embedded %s (%d records)", source.path, len(pairs))
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return processed, errors

    def _embed_source(self, source: DocumentSource) -> list[tuple[Chunk, list[float]]]:
        logger.debug("Processing %s", source.path)
        return self._embed_document(source.read())

    def _embed_document(self, document: Document) -> list[tuple[Chunk, list[float]]]:
        chunks = chunk_document(document)
        if not chunks:
            return []
        vectors = self.backend.embed_many([chunk.text for chunk in chunks])
        if len(vectors) != len(chunks):
            raise EmbeddingError(
                f"Backend returned {len(vectors)} vectors for {len(chunks)} chunks "
                f"of {document.source_path}"
            )
        return list(zip(chunks, vectors))

    def _store_chunks(self, pairs: list[tuple[Chunk, list[float]]]) -> None:
        # Overall and entry records of a branch note commit together.
        self.store.store_many(
            [(chunk.namespace, chunk.key, vector) for chunk, vector in pairs],
            backend=self.backend.name,
        )
