"""Storage backends for cached embeddings."""

from .base import DimensionMismatchError, EmbeddingRecord, EmbeddingStore, StoreError
from .duckdb import DuckDBEmbeddingStore

__all__ = [
    "DimensionMismatchError",
    "EmbeddingRecord",
    "EmbeddingStore",
    "StoreError",
    "DuckDBEmbeddingStore",
]
