"""
Configuration helpers for the corpus root and embedding store location.
"""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_ROOT = "~/.cursor-cortex"
DEFAULT_DB_NAME = "embeddings/index.duckdb"
DEFAULT_WORKERS = 4

ENV_ROOT = "CORTEX_INDEX_ROOT"
ENV_DB_PATH = "CORTEX_INDEX_DB_PATH"
ENV_WORKERS = "CORTEX_INDEX_WORKERS"


def resolve_root(override_path: str | None = None) -> Path:
    """
    Resolve the corpus storage root from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) CORTEX_INDEX_ROOT
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_ROOT) or DEFAULT_ROOT
    return Path(raw_path).expanduser().resolve()


def resolve_db_path(
    override_path: str | None = None,
    *,
    root: Path | None = None,
) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or a file under the root.

    The parent directory is created so the store can be opened immediately.
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH)
    if raw_path:
        resolved = Path(raw_path).expanduser().resolve()
    else:
        resolved = (root or resolve_root()) / DEFAULT_DB_NAME
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_workers(override: int | None = None) -> int:
    if override is not None:
        workers = override
    else:
        workers = int(os.getenv(ENV_WORKERS, str(DEFAULT_WORKERS)))
    if workers <= 0:
        raise ValueError("worker count must be > 0")
    return workers
