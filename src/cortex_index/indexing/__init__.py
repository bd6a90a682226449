"""Indexing components for cortex-index."""

from .chunker import Chunk, EntrySegment, chunk_document, split_entries
from .pipeline import IndexingPipeline, IndexingResult, RunStats, should_regenerate

__all__ = [
    "Chunk",
    "EntrySegment",
    "chunk_document",
    "split_entries",
    "IndexingPipeline",
    "IndexingResult",
    "RunStats",
    "should_regenerate",
]
