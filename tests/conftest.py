from __future__ import annotations

import threading
from pathlib import Path

import pytest

from cortex_index.corpus import CorpusScanner
from cortex_index.embeddings import EmbeddingError, HashEmbeddingBackend
from cortex_index.storage import DuckDBEmbeddingStore, StoreError


class RecordingBackend(HashEmbeddingBackend):
    """Hash backend that records every text and can fail on demand."""

    name = "recording"

    def __init__(
        self,
        dim: int = 32,
        *,
        fail_on: str | None = None,
        available: bool = True,
    ) -> None:
        super().__init__(dim=dim)
        self.fail_on = fail_on
        self.available = available
        self.texts: list[str] = []
        self.batches: list[list[str]] = []
        self._lock = threading.Lock()

    def embed(self, text: str) -> list[float]:
        with self._lock:
            self.texts.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingError(f"model refused text containing {self.fail_on!r}")
        return super().embed(text)

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        with self._lock:
            self.batches.append(list(texts))
        return super().embed_many(texts)

    def embed_query(self, query: str) -> list[float]:
        if not self.available:
            raise EmbeddingError("model unavailable")
        return super().embed(query)

    def is_available(self) -> bool:
        return self.available


class FailingStore(DuckDBEmbeddingStore):
    """DuckDB store whose INSERT for one key fails mid-transaction."""

    def __init__(self, db_path: str, *, fail_key: str) -> None:
        self.fail_key = fail_key
        super().__init__(db_path)

    def _execute(self, sql: str, params: list | None = None) -> None:
        if params and len(params) > 1 and params[1] == self.fail_key:
            raise StoreError(f"disk full while writing {self.fail_key}")
        super()._execute(sql, params)


TACIT_DOC = """# Tacit Knowledge Capture

**Title:** {title}
**Tags:** {tags}

## Problem
{body}
"""

BRANCH_NOTE = """# Branch Note: feature-login
---

## 2025-01-10 09:00:00
Started wiring the OAuth login flow into the gateway service today.

## 2025-01-12 14:30:00
Fixed the token refresh race by serialising refresh requests per session.
"""


def write_doc(root: Path, *parts: str, content: str) -> Path:
    path = root.joinpath(*parts)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def corpus_root(tmp_path: Path) -> Path:
    root = tmp_path / "cortex"
    root.mkdir()
    return root


@pytest.fixture
def tacit_corpus(corpus_root: Path) -> Path:
    write_doc(
        corpus_root,
        "knowledge",
        "api",
        "flaky-tests.md",
        content=TACIT_DOC.format(
            title="Flaky integration tests",
            tags="testing, ci",
            body="Integration tests failed randomly because the fixture port was shared.",
        ),
    )
    write_doc(
        corpus_root,
        "knowledge",
        "api",
        "db-migrations.md",
        content=TACIT_DOC.format(
            title="Database migrations lock tables",
            tags="postgres, migrations",
            body="Long running migrations held an exclusive lock on the orders table.",
        ),
    )
    write_doc(
        corpus_root,
        "knowledge",
        "api",
        "cache-eviction.md",
        content=TACIT_DOC.format(
            title="Cache eviction storms",
            tags="redis, caching",
            body="All keys expired at once after deploy, overloading the database.",
        ),
    )
    return corpus_root


@pytest.fixture
def scanner(corpus_root: Path) -> CorpusScanner:
    return CorpusScanner(corpus_root)


@pytest.fixture
def store(tmp_path: Path):
    embedding_store = DuckDBEmbeddingStore(str(tmp_path / "index.duckdb"))
    yield embedding_store
    embedding_store.close()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
