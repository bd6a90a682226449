"""
Storage interfaces and data models for embedding persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class StoreError(RuntimeError):
    """A record could not be read or written."""


class DimensionMismatchError(StoreError):
    """A vector does not match the dimension already used by the store."""


@dataclass(frozen=True)
class EmbeddingRecord:
    """A cached embedding vector for one (namespace, id) key."""

    namespace: str
    id: str
    vector: list[float]
    stored_at: str
    backend: str = ""

    @property
    def dim(self) -> int:
        return len(self.vector)


class EmbeddingStore(Protocol):
    """Protocol for the embedding cache used by indexing and search."""

    def exists(self, namespace: str, id: str) -> bool:
        """Return True if a record exists for the key."""

    def load(self, namespace: str, id: str) -> EmbeddingRecord | None:
        """Return the record for the key, or None."""

    def store(
        self,
        namespace: str,
        id: str,
        vector: list[float],
        *,
        backend: str = "",
    ) -> None:
        """Insert or overwrite the record for the key."""

    def store_many(
        self,
        items: list[tuple[str, str, list[float]]],
        *,
        backend: str = "",
    ) -> None:
        """Insert or overwrite several (namespace, id, vector) records atomically."""

    def enumerate(self, namespace: str) -> list[EmbeddingRecord]:
        """Return all records of a namespace ordered by id."""

    def namespaces(self) -> list[str]:
        """Return the namespaces that hold at least one record."""

    def count(self, namespace: str | None = None) -> int:
        """Count records, optionally restricted to one namespace."""

    def dimension(self) -> int | None:
        """Return the vector dimension of the store, or None when empty."""

    def close(self) -> None:
        """Release underlying resources."""
