"""
Embedding backends for vector-based semantic search.

Two implementations share the ``EmbeddingBackend`` protocol: the Google
GenAI embedding API, and a deterministic token-hashing backend that needs
no network and is used by tests and offline runs.
"""

from __future__ import annotations

import hashlib
import logging
import math
import os
import re
from typing import Any, Protocol

from google.genai import Client as GenAIClient
from google.genai.types import HttpOptions

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50
_DEFAULT_TIMEOUT_MS = 30_000
_DEFAULT_HASH_DIM = 256

ENV_BACKEND = "CORTEX_INDEX_EMBEDDING_BACKEND"

_TOKEN_RE = re.compile(r"[a-z0-9_]+")


class EmbeddingError(RuntimeError):
    """The backend could not produce a vector for one text."""


class BackendUnavailableError(EmbeddingError):
    """The backend cannot serve any request."""


class EmbeddingBackend(Protocol):
    """Capability: text in, fixed-dimension vector out."""

    name: str
    dim: int

    def embed(self, text: str) -> list[float]:
        """Embed a document text."""

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts, returning vectors in input order."""

    def embed_query(self, query: str) -> list[float]:
        """Embed a search query."""

    def is_available(self) -> bool:
        """Return True if the backend can currently serve requests."""


class GenAIEmbeddingBackend:
    """Generate text embeddings via Google GenAI."""

    name = "genai"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        timeout_ms: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("CORTEX_INDEX_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("CORTEX_INDEX_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("CORTEX_INDEX_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )
        self.timeout_ms = timeout_ms or int(
            os.getenv("CORTEX_INDEX_EMBEDDING_TIMEOUT_MS", str(_DEFAULT_TIMEOUT_MS))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=self.timeout_ms),
            )

    def _embed_batch(self, contents: list[str], task_type: str) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=contents,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        return [list(emb.values) for emb in result.embeddings]

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(self._embed_batch(batch, task_type))
        return all_embeddings

    def embed(self, text: str) -> list[float]:
        return self._embed_batch([text], "RETRIEVAL_DOCUMENT")[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        return self.embed_texts(texts)

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        return self._embed_batch([query], "RETRIEVAL_QUERY")[0]

    def is_available(self) -> bool:
        try:
            self.embed_query("availability check")
        except EmbeddingError as exc:
            logger.warning("Embedding model %s is unavailable: %s", self.model, exc)
            return False
        return True


class HashEmbeddingBackend:
    """
    Deterministic bag-of-tokens embedding.

    Each lowercase token is hashed into a signed bucket and the vector is
    L2-normalized, so texts sharing vocabulary score a high cosine
    similarity. Identical text always yields an identical vector.
    """

    name = "hash"

    def __init__(self, dim: int | None = None) -> None:
        self.dim = dim or int(
            os.getenv("CORTEX_INDEX_EMBEDDING_DIM", str(_DEFAULT_HASH_DIM))
        )
        if self.dim <= 0:
            raise ValueError("dim must be > 0")

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dim
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    def embed_query(self, query: str) -> list[float]:
        return self.embed(query)

    def is_available(self) -> bool:
        return True


def build_backend(name: str | None = None) -> EmbeddingBackend:
    """Create the backend named by *name* or ``CORTEX_INDEX_EMBEDDING_BACKEND``."""
    resolved = (name or os.getenv(ENV_BACKEND) or GenAIEmbeddingBackend.name).lower()
    if resolved == GenAIEmbeddingBackend.name:
        return GenAIEmbeddingBackend()
    if resolved == HashEmbeddingBackend.name:
        return HashEmbeddingBackend()
    raise ValueError(f"Unknown embedding backend: {resolved!r}")
