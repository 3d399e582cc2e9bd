"""Shared fixtures for the schema upgrade test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, event, text


@pytest.fixture
def engine(tmp_path: Path):
    """SQLite engine backed by a file in the test's temporary directory."""
    engine = create_engine(f"sqlite:///{tmp_path / 'upgrade.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def statement_log(engine) -> list[str]:
    """Every statement sent to the database, in order."""
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany) -> None:
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture
def resource_root(tmp_path: Path) -> Path:
    root = tmp_path / "resources"
    root.mkdir()
    return root


@pytest.fixture
def write_script(resource_root: Path):
    """Write a file below the resource root and return its path."""

    def _write(relative_path: str, content: str) -> Path:
        path = resource_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def create_version_table(engine):
    """Create a version table, optionally holding one version row."""

    def _create(table_name: str, version: str | None = None) -> None:
        with engine.begin() as conn:
            conn.execute(
                text(
                    f"CREATE TABLE {table_name} "
                    f"(id INTEGER PRIMARY KEY, version VARCHAR(200) NOT NULL)"
                )
            )
            if version is not None:
                conn.execute(
                    text(f"INSERT INTO {table_name} (version) VALUES (:version)"),
                    {"version": version},
                )

    return _create


@pytest.fixture
def read_version(engine):
    """Read the raw version text stored in a table."""

    def _read(table_name: str) -> str | None:
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT version FROM {table_name}")).scalar()

    return _read


@pytest.fixture
def table_names(engine):
    def _names() -> set[str]:
        with engine.connect() as conn:
            rows = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            ).fetchall()
        return {row[0] for row in rows}

    return _names
