import logging
from typing import Annotated

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .config import resolve_db_path, resolve_root, resolve_workers
from .corpus import SCANNED_CATEGORIES, Category, CorpusScanner, StorageRootError
from .embeddings import BackendUnavailableError, EmbeddingError, build_backend
from .indexing import IndexingPipeline, IndexingResult
from .search import DEFAULT_THRESHOLD, DEFAULT_TOP_K, SemanticSearchEngine
from .storage import DuckDBEmbeddingStore, StoreError

logger = logging.getLogger(__name__)

app = Typer(help="Embedding index and semantic search over a markdown knowledge corpus.")

_STORAGE_KEYS = (
    ("Tacit Knowledge", "project keys"),
    ("Branch Notes", '"branch_notes_{project}" keys'),
    ("Context Files", '"context_{project}" keys'),
    ("Archives", '"archives" key'),
)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        root_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        )
    # Third-party HTTP clients are noisy at DEBUG.
    for name in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _parse_categories(values: list[str] | None) -> list[Category] | None:
    if not values:
        return None
    categories: list[Category] = []
    for value in values:
        try:
            category = Category(value)
        except ValueError:
            raise ValueError(f"Unknown category: {value!r}") from None
        if category not in SCANNED_CATEGORIES:
            raise ValueError(f"Category {value!r} cannot be selected directly")
        categories.append(category)
    return categories


def render_result(console: Console, result: IndexingResult) -> None:
    table = Table(title="Embedding generation", title_justify="left")
    table.add_column("Category")
    table.add_column("Processed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Total", justify="right")
    for category, stats in result.categories.items():
        table.add_row(
            category.label,
            str(stats.processed),
            str(stats.skipped),
            str(stats.errors),
            str(stats.total),
        )
    total = result.total
    table.add_row(
        "[bold]All[/]",
        str(total.processed),
        str(total.skipped),
        str(total.errors),
        str(total.total),
    )
    console.print(table)
    console.print(
        f"Final summary: {total.summary()} in {result.duration:.2f}s",
    )
    if total.processed > 0:
        keys = "\n".join(f"- {label} -> {key}" for label, key in _STORAGE_KEYS)
        console.print(
            Panel(keys, title="Storage keys", title_align="left", border_style="green")
        )
    if total.errors > 0:
        console.print(
            f"[bold yellow]{total.errors} errors occurred. Use --verbose to see details.[/]"
        )


@app.command()
def index(
    verbose: Annotated[
        bool,
        Option("--verbose", "-v", help="Report the outcome of every document."),
    ] = False,
    force: Annotated[
        bool,
        Option("--force", "-f", help="Regenerate embeddings even if they already exist."),
    ] = False,
    root: Annotated[
        str | None,
        Option("--root", help="Corpus storage root (default: CORTEX_INDEX_ROOT or ~/.cursor-cortex)."),
    ] = None,
    db_path: Annotated[
        str | None,
        Option("--db-path", help="DuckDB embedding store path."),
    ] = None,
    category: Annotated[
        list[str] | None,
        Option("--category", "-c", help="Only index these categories (repeatable)."),
    ] = None,
    workers: Annotated[
        int | None,
        Option("--workers", help="Parallel embedding calls per category."),
    ] = None,
    backend: Annotated[
        str | None,
        Option("--backend", help="Embedding backend: genai or hash."),
    ] = None,
) -> None:
    """Generate embeddings for every document in the corpus."""
    configure_logging(verbose)
    console = Console()

    try:
        categories = _parse_categories(category)
        resolved_root = resolve_root(root)
        scanner = CorpusScanner(resolved_root)
        scanner.check_root()
        max_workers = resolve_workers(workers)
        embedding_backend = build_backend(backend)
        store = DuckDBEmbeddingStore(resolve_db_path(db_path, root=resolved_root))
    except (ValueError, StorageRootError, StoreError) as exc:
        console.print(f"[bold red]{exc}[/]")
        raise Exit(code=1)

    console.print(f"Storage root: {resolved_root}")
    if force:
        console.print("Force regenerate mode enabled")

    pipeline = IndexingPipeline(
        scanner,
        store,
        embedding_backend,
        force=force,
        max_workers=max_workers,
    )
    try:
        with console.status("Generating embeddings..."):
            result = pipeline.index_all(categories)
    except (StorageRootError, BackendUnavailableError) as exc:
        console.print(f"[bold red]Failed to generate embeddings: {exc}[/]")
        raise Exit(code=1)
    finally:
        store.close()

    render_result(console, result)


@app.command()
def search(
    query: Annotated[str, Argument(help="Free-text query.")],
    project: Annotated[
        str | None,
        Option("--project", "-p", help="Restrict to one project."),
    ] = None,
    category: Annotated[
        list[str] | None,
        Option("--category", "-c", help="Restrict to these categories (repeatable)."),
    ] = None,
    scope: Annotated[
        list[str] | None,
        Option("--scope", "-s", help="Explicit store namespaces (repeatable)."),
    ] = None,
    top_k: Annotated[int, Option("--top-k", "-k", min=1)] = DEFAULT_TOP_K,
    threshold: Annotated[float, Option("--threshold")] = DEFAULT_THRESHOLD,
    root: Annotated[str | None, Option("--root")] = None,
    db_path: Annotated[str | None, Option("--db-path")] = None,
    backend: Annotated[str | None, Option("--backend")] = None,
    verbose: Annotated[bool, Option("--verbose", "-v")] = False,
) -> None:
    """Rank cached embeddings against a query."""
    configure_logging(verbose)
    console = Console()

    try:
        categories = _parse_categories(category)
        resolved_root = resolve_root(root)
        store = DuckDBEmbeddingStore(resolve_db_path(db_path, root=resolved_root))
    except (ValueError, StoreError) as exc:
        console.print(f"[bold red]{exc}[/]")
        raise Exit(code=1)

    try:
        embedding_backend = build_backend(backend)
    except (ValueError, EmbeddingError) as exc:
        logger.warning("Embedding backend unavailable, using keyword search: %s", exc)
        embedding_backend = None

    try:
        engine = SemanticSearchEngine(
            store,
            embedding_backend,
            scanner=CorpusScanner(resolved_root),
        )
        namespaces = scope or engine.resolve_scope(project=project, categories=categories)
        hits = engine.search(query, scope=namespaces, top_k=top_k, threshold=threshold)
    finally:
        store.close()

    if not hits:
        console.print("No matching documents found.")
        return

    table = Table(title=f"Results for {query!r}", title_justify="left")
    table.add_column("#", justify="right")
    table.add_column("Namespace")
    table.add_column("Document")
    table.add_column("Score", justify="right")
    table.add_column("Match")
    for rank, hit in enumerate(hits, start=1):
        table.add_row(str(rank), hit.namespace, hit.id, f"{hit.score:.3f}", hit.matched_by)
    console.print(table)


@app.command()
def status(
    root: Annotated[str | None, Option("--root")] = None,
    db_path: Annotated[str | None, Option("--db-path")] = None,
) -> None:
    """Show namespaces and record counts of the embedding store."""
    configure_logging()
    console = Console()
    resolved_root = resolve_root(root)
    try:
        db_file = resolve_db_path(db_path, root=resolved_root)
        store = DuckDBEmbeddingStore(db_file, read_only=True)
    except StoreError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise Exit(code=1)

    try:
        table = Table(title="Embedding store", title_justify="left")
        table.add_column("Namespace")
        table.add_column("Records", justify="right")
        for namespace in store.namespaces():
            table.add_row(namespace, str(store.count(namespace)))
        console.print(f"Store: {store.db_path}")
        console.print(table)
        dim = store.dimension()
        console.print(
            f"Records: {store.count()}  Dimension: {dim if dim is not None else '-'}"
        )
    finally:
        store.close()
