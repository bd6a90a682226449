"""
cortex-index - embedding index and semantic search for a markdown knowledge corpus.

The corpus holds tacit-knowledge write-ups, branch notes, project context
files, and archives. Each document (and each dated branch-note entry) is
embedded once and cached; queries are ranked by cosine similarity with a
keyword fallback.

Example usage:
    >>> from cortex_index import CorpusScanner, DuckDBEmbeddingStore, IndexingPipeline
    >>> from cortex_index import HashEmbeddingBackend, SemanticSearchEngine
    >>> scanner = CorpusScanner("~/.cursor-cortex")
    >>> store = DuckDBEmbeddingStore("/tmp/index.duckdb")
    >>> result = IndexingPipeline(scanner, store, HashEmbeddingBackend()).index_all()
    >>> engine = SemanticSearchEngine(store, HashEmbeddingBackend(), scanner=scanner)
    >>> hits = engine.search("flaky test", scope=engine.resolve_scope(project="api"))
"""

from .corpus import (
    Category,
    CategoryUnreadableError,
    CorpusScanner,
    Document,
    DocumentSource,
    StorageRootError,
    namespace_for,
)
from .embeddings import (
    BackendUnavailableError,
    EmbeddingBackend,
    EmbeddingError,
    GenAIEmbeddingBackend,
    HashEmbeddingBackend,
    build_backend,
)
from .indexing import IndexingPipeline, IndexingResult, RunStats, chunk_document
from .search import SearchHit, SemanticSearchEngine
from .storage import DuckDBEmbeddingStore, EmbeddingRecord, StoreError

__all__ = [
    # Corpus
    "Category",
    "CategoryUnreadableError",
    "CorpusScanner",
    "Document",
    "DocumentSource",
    "StorageRootError",
    "namespace_for",
    # Embeddings
    "BackendUnavailableError",
    "EmbeddingBackend",
    "EmbeddingError",
    "GenAIEmbeddingBackend",
    "HashEmbeddingBackend",
    "build_backend",
    # Indexing
    "IndexingPipeline",
    "IndexingResult",
    "RunStats",
    "chunk_document",
    # Search
    "SearchHit",
    "SemanticSearchEngine",
    # Storage
    "DuckDBEmbeddingStore",
    "EmbeddingRecord",
    "StoreError",
]
