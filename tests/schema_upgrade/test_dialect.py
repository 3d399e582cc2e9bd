"""Tests for database dialects: script paths and catalog checks."""

from unittest.mock import Mock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from schema_upgrade.dialect import DbDialect, DbType, ScriptKind
from schema_upgrade.exceptions import QueryFailed, UnsupportedDialectError


class TestScriptPaths:
    """Test resource path construction per dialect."""

    @pytest.mark.parametrize(
        "db_type, expected",
        [
            ("postgresql", "sql/dolphinscheduler_postgresql.sql"),
            ("mysql", "sql/dolphinscheduler_mysql.sql"),
            ("sqlite", "sql/dolphinscheduler_sqlite.sql"),
        ],
    )
    def test_init_script_path(self, db_type, expected):
        assert DbDialect.for_type(db_type).script_path(ScriptKind.INIT) == expected

    def test_upgrade_script_paths(self):
        dialect = DbDialect.for_type(DbType.MYSQL)

        assert (
            dialect.script_path(ScriptKind.DDL, "1.3.0_schema")
            == "sql/upgrade/1.3.0_schema/mysql/dolphinscheduler_ddl.sql"
        )
        assert (
            dialect.script_path(ScriptKind.DML, "1.3.0_schema")
            == "sql/upgrade/1.3.0_schema/mysql/dolphinscheduler_dml.sql"
        )

    def test_script_kind_accepts_text(self):
        dialect = DbDialect.for_type(DbType.POSTGRESQL)
        assert (
            dialect.script_path("ddl", "2.0.6_schema")
            == "sql/upgrade/2.0.6_schema/postgresql/dolphinscheduler_ddl.sql"
        )

    def test_upgrade_script_requires_step_id(self):
        with pytest.raises(ValueError):
            DbDialect.for_type(DbType.MYSQL).script_path(ScriptKind.DDL)


class TestDbType:
    """Test the closed set of database types."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("MySQL", DbType.MYSQL),
            ("mariadb", DbType.MYSQL),
            ("postgres", DbType.POSTGRESQL),
            (" PostgreSQL ", DbType.POSTGRESQL),
            ("sqlite3", DbType.SQLITE),
        ],
    )
    def test_aliases(self, name, expected):
        assert DbType.from_string(name) is expected

    @pytest.mark.parametrize("name", ["oracle", "h2", ""])
    def test_unsupported(self, name):
        with pytest.raises(UnsupportedDialectError):
            DbType.from_string(name)

    def test_one_dialect_per_type(self):
        assert DbDialect.for_type("postgres") is DbDialect.for_type(DbType.POSTGRESQL)

    def test_for_engine(self, engine):
        assert DbDialect.for_engine(engine).db_type is DbType.SQLITE

    def test_identifier_case(self):
        assert DbDialect.for_type(DbType.POSTGRESQL).normalize_identifier("T_DS_Version") == "t_ds_version"
        assert DbDialect.for_type(DbType.MYSQL).normalize_identifier("T_DS_Version") == "T_DS_Version"


class TestExistenceChecks:
    """Test table and column existence against a live SQLite database."""

    @pytest.fixture
    def dialect(self):
        return DbDialect.for_type(DbType.SQLITE)

    @pytest.fixture(autouse=True)
    def queue_table(self, engine):
        with engine.begin() as conn:
            conn.execute(
                text("CREATE TABLE t_escheduler_queue (id INTEGER PRIMARY KEY, create_time TEXT)")
            )

    def test_table_exists(self, engine, dialect):
        with engine.connect() as conn:
            assert dialect.table_exists(conn, "t_escheduler_queue") is True
            assert dialect.table_exists(conn, "T_ESCHEDULER_QUEUE") is True
            assert dialect.table_exists(conn, "t_ds_version") is False

    def test_column_exists(self, engine, dialect):
        with engine.connect() as conn:
            assert dialect.column_exists(conn, "t_escheduler_queue", "create_time") is True
            assert dialect.column_exists(conn, "t_escheduler_queue", "update_time") is False

    def test_missing_table_has_no_columns(self, engine, dialect):
        """An empty catalog result is False, not an error."""
        with engine.connect() as conn:
            assert dialect.column_exists(conn, "t_missing", "id") is False

    def test_query_failure_raises_query_failed(self, dialect):
        conn = Mock()
        conn.execute.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))

        with pytest.raises(QueryFailed) as exc_info:
            dialect.table_exists(conn, "t_ds_version")

        assert isinstance(exc_info.value.cause, OperationalError)
        assert "sqlite_master" in exc_info.value.query
