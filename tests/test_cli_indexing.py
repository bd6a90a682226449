"""CLI tests for the index, search, and status commands."""

from pathlib import Path

from typer.testing import CliRunner

import cortex_index.main as main_module
from cortex_index.storage import DuckDBEmbeddingStore

from conftest import RecordingBackend


def _index_args(root: Path, db_path: Path, *extra: str) -> list[str]:
    return ["index", "--root", str(root), "--db-path", str(db_path), "--backend", "hash", *extra]


def test_index_then_rerun(tacit_corpus: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "cli.duckdb"
    runner = CliRunner()

    first = runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))
    assert first.exit_code == 0, first.stdout
    assert "3 processed, 0 skipped, 0 errors (3 total)" in first.stdout
    assert "Storage keys" in first.stdout

    second = runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))
    assert second.exit_code == 0
    assert "0 processed, 3 skipped, 0 errors (3 total)" in second.stdout


def test_index_force_regenerates(tacit_corpus: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "cli.duckdb"
    runner = CliRunner()
    runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))

    forced = runner.invoke(main_module.app, _index_args(tacit_corpus, db_path, "--force"))

    assert forced.exit_code == 0
    assert "Force regenerate mode enabled" in forced.stdout
    assert "3 processed, 0 skipped, 0 errors (3 total)" in forced.stdout


def test_index_exits_zero_with_document_errors(
    tacit_corpus: Path, tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.setattr(
        main_module,
        "build_backend",
        lambda name=None: RecordingBackend(fail_on="Cache eviction storms"),
    )
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        ["index", "--root", str(tacit_corpus), "--db-path", str(tmp_path / "e.duckdb")],
    )

    assert result.exit_code == 0
    assert "2 processed, 0 skipped, 1 errors (3 total)" in result.stdout
    assert "Use --verbose to see details" in result.stdout


def test_index_missing_root_exits_non_zero(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        _index_args(tmp_path / "missing", tmp_path / "x.duckdb"),
    )

    assert result.exit_code == 1
    assert "No such directory" in result.stdout


def test_index_unavailable_backend_exits_non_zero(
    tacit_corpus: Path, tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.setattr(
        main_module,
        "build_backend",
        lambda name=None: RecordingBackend(available=False),
    )
    runner = CliRunner()
    db_path = tmp_path / "u.duckdb"

    result = runner.invoke(
        main_module.app,
        ["index", "--root", str(tacit_corpus), "--db-path", str(db_path)],
    )

    assert result.exit_code == 1
    assert "unavailable" in result.stdout
    store = DuckDBEmbeddingStore(str(db_path))
    try:
        assert store.count() == 0
    finally:
        store.close()


def test_index_category_filter(tacit_corpus: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        _index_args(tacit_corpus, tmp_path / "c.duckdb", "--category", "context"),
    )

    assert result.exit_code == 0
    assert "Context Files" in result.stdout
    assert "Tacit Knowledge" not in result.stdout


def test_index_rejects_unknown_category(tacit_corpus: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        _index_args(tacit_corpus, tmp_path / "c.duckdb", "--category", "branch_entry"),
    )

    assert result.exit_code == 1
    assert "cannot be selected directly" in result.stdout


def test_search_and_status(tacit_corpus: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "s.duckdb"
    runner = CliRunner()
    runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))

    search = runner.invoke(
        main_module.app,
        [
            "search",
            "Cache eviction storms redis caching",
            "--project",
            "api",
            "--root",
            str(tacit_corpus),
            "--db-path",
            str(db_path),
            "--backend",
            "hash",
            "--threshold",
            "0.1",
        ],
    )
    assert search.exit_code == 0, search.stdout
    assert "cache-eviction" in search.stdout
    assert "semantic" in search.stdout

    status = runner.invoke(
        main_module.app,
        ["status", "--root", str(tacit_corpus), "--db-path", str(db_path)],
    )
    assert status.exit_code == 0
    assert "api" in status.stdout
    assert "Records: 3" in status.stdout


def test_search_without_api_key_uses_keyword_matching(
    tacit_corpus: Path, tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("CORTEX_INDEX_EMBEDDING_BACKEND", raising=False)
    db_path = tmp_path / "nokey.duckdb"
    runner = CliRunner()
    runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))

    result = runner.invoke(
        main_module.app,
        ["search", "orders table lock", "--root", str(tacit_corpus), "--db-path", str(db_path)],
    )

    assert result.exit_code == 0, result.stdout
    assert "db-migrations" in result.stdout
    assert "lexical" in result.stdout


def test_search_with_other_dimension_uses_keyword_matching(
    tacit_corpus: Path, tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.delenv("CORTEX_INDEX_EMBEDDING_DIM", raising=False)
    db_path = tmp_path / "dims.duckdb"
    runner = CliRunner()
    runner.invoke(main_module.app, _index_args(tacit_corpus, db_path))

    monkeypatch.setenv("CORTEX_INDEX_EMBEDDING_DIM", "64")
    result = runner.invoke(
        main_module.app,
        [
            "search",
            "orders table lock",
            "--root",
            str(tacit_corpus),
            "--db-path",
            str(db_path),
            "--backend",
            "hash",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "db-migrations" in result.stdout
    assert "lexical" in result.stdout


def test_search_rejects_zero_top_k(tacit_corpus: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "database",
            "--top-k",
            "0",
            "--root",
            str(tacit_corpus),
            "--db-path",
            str(tmp_path / "k.duckdb"),
            "--backend",
            "hash",
        ],
    )

    assert result.exit_code == 2


def test_status_does_not_create_missing_store(tacit_corpus: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "absent.duckdb"
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        ["status", "--root", str(tacit_corpus), "--db-path", str(db_path)],
    )

    assert result.exit_code == 1
    assert "Cannot open embedding store" in result.stdout
    assert not db_path.exists()
