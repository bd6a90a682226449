from pathlib import Path

import pytest

from cortex_index.config import resolve_db_path, resolve_root, resolve_workers


def test_resolve_root_precedence(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("CORTEX_INDEX_ROOT", str(tmp_path / "from-env"))

    assert resolve_root(str(tmp_path / "explicit")) == (tmp_path / "explicit").resolve()
    assert resolve_root() == (tmp_path / "from-env").resolve()

    monkeypatch.delenv("CORTEX_INDEX_ROOT")
    assert resolve_root() == Path("~/.cursor-cortex").expanduser().resolve()


def test_resolve_db_path_defaults_under_root(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("CORTEX_INDEX_DB_PATH", raising=False)

    db_path = resolve_db_path(root=tmp_path)

    assert db_path == str(tmp_path / "embeddings" / "index.duckdb")
    assert (tmp_path / "embeddings").is_dir()


def test_resolve_db_path_env_and_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("CORTEX_INDEX_DB_PATH", str(tmp_path / "env" / "db.duckdb"))

    assert resolve_db_path(root=tmp_path) == str((tmp_path / "env" / "db.duckdb").resolve())
    assert resolve_db_path(str(tmp_path / "cli.duckdb"), root=tmp_path) == str(
        (tmp_path / "cli.duckdb").resolve()
    )


def test_resolve_workers(monkeypatch) -> None:
    monkeypatch.setenv("CORTEX_INDEX_WORKERS", "8")

    assert resolve_workers() == 8
    assert resolve_workers(2) == 2
    with pytest.raises(ValueError):
        resolve_workers(0)
