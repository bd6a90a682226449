"""
DuckDB storage backend for cached embeddings.
"""

from __future__ import annotations

from contextlib import suppress
from pathlib import Path
from typing import Any

import duckdb

from .base import DimensionMismatchError, EmbeddingRecord, StoreError


class DuckDBEmbeddingStore:
    """DuckDB-backed (namespace, id) -> vector cache."""

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        if not read_only:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = duckdb.connect(self.db_path, read_only=read_only)
        except duckdb.Error as exc:
            raise StoreError(f"Cannot open embedding store {self.db_path}: {exc}") from exc
        self._dim: int | None = None
        if not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS embeddings (
                namespace VARCHAR NOT NULL,
                id VARCHAR NOT NULL,
                vector DOUBLE[] NOT NULL,
                dim INTEGER NOT NULL,
                backend VARCHAR NOT NULL DEFAULT '',
                stored_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (namespace, id)
            );
            """
        )

    def exists(self, namespace: str, id: str) -> bool:
        row = self._fetchone(
            "SELECT 1 FROM embeddings WHERE namespace = ? AND id = ? LIMIT 1",
            [namespace, id],
        )
        return row is not None

    def load(self, namespace: str, id: str) -> EmbeddingRecord | None:
        row = self._fetchone(
            """
            SELECT namespace, id, vector, stored_at, backend
            FROM embeddings
            WHERE namespace = ? AND id = ?
            LIMIT 1
            """,
            [namespace, id],
        )
        if row is None:
            return None
        return self._row_to_record(row)

    def store(
        self,
        namespace: str,
        id: str,
        vector: list[float],
        *,
        backend: str = "",
    ) -> None:
        self.store_many([(namespace, id, vector)], backend=backend)

    def store_many(
        self,
        items: list[tuple[str, str, list[float]]],
        *,
        backend: str = "",
    ) -> None:
        """Upsert several records in one transaction.

        Either every item is written or none is.
        """
        if not items:
            return
        expected = self.dimension()
        for namespace, id, vector in items:
            if not vector:
                raise StoreError(f"Refusing to store an empty vector for {namespace}/{id}")
            if expected is None:
                expected = len(vector)
            if len(vector) != expected:
                raise DimensionMismatchError(
                    f"Vector for {namespace}/{id} has dimension {len(vector)}, "
                    f"store uses {expected}"
                )

        self._execute("BEGIN TRANSACTION")
        try:
            for namespace, id, vector in items:
                self._execute(
                    """
                    INSERT INTO embeddings (namespace, id, vector, dim, backend, stored_at)
                    VALUES (?, ?, ?, ?, ?, now())
                    ON CONFLICT (namespace, id) DO UPDATE SET
                        vector = excluded.vector,
                        dim = excluded.dim,
                        backend = excluded.backend,
                        stored_at = now()
                    """,
                    [namespace, id, [float(v) for v in vector], len(vector), backend],
                )
            self._execute("COMMIT")
        except BaseException:
            # A failed COMMIT leaves no transaction to roll back.
            with suppress(duckdb.Error):
                self._conn.rollback()
            raise
        self._dim = expected

    def enumerate(self, namespace: str) -> list[EmbeddingRecord]:
        rows = self._fetchall(
            """
            SELECT namespace, id, vector, stored_at, backend
            FROM embeddings
            WHERE namespace = ?
            ORDER BY id
            """,
            [namespace],
        )
        return [self._row_to_record(row) for row in rows]

    def namespaces(self) -> list[str]:
        rows = self._fetchall(
            "SELECT DISTINCT namespace FROM embeddings ORDER BY namespace",
            [],
        )
        return [str(row[0]) for row in rows]

    def count(self, namespace: str | None = None) -> int:
        if namespace is None:
            row = self._fetchone("SELECT COUNT(*) FROM embeddings", [])
        else:
            row = self._fetchone(
                "SELECT COUNT(*) FROM embeddings WHERE namespace = ?",
                [namespace],
            )
        return int(row[0]) if row else 0

    def dimension(self) -> int | None:
        if self._dim is None:
            row = self._fetchone("SELECT dim FROM embeddings LIMIT 1", [])
            if row is not None:
                self._dim = int(row[0])
        return self._dim

    def _execute(self, sql: str, params: list[Any] | None = None) -> None:
        try:
            self._conn.execute(sql, params or [])
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    def _fetchone(self, sql: str, params: list[Any]) -> tuple[Any, ...] | None:
        try:
            return self._conn.execute(sql, params).fetchone()
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    def _fetchall(self, sql: str, params: list[Any]) -> list[tuple[Any, ...]]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except duckdb.Error as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _row_to_record(row: tuple[Any, ...]) -> EmbeddingRecord:
        return EmbeddingRecord(
            namespace=str(row[0]),
            id=str(row[1]),
            vector=[float(v) for v in row[2]],
            stored_at=str(row[3]),
            backend=str(row[4]),
        )
