"""
Database Dialects

The closed set of supported database vendors. Each vendor contributes
script path naming, identifier case rules and the catalog queries used
to check whether tables and columns exist.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import QueryFailed, UnsupportedDialectError

logger = logging.getLogger(__name__)

SQL_DIR = "sql"
UPGRADE_DIR = "upgrade"
SCRIPT_PREFIX = "dolphinscheduler"


class DbType(str, Enum):
    """Supported database vendors."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, value: str) -> "DbType":
        """Convert a vendor name (or a common alias) to a DbType."""
        name = (value or "").lower().strip()

        aliases = {
            "mysql": cls.MYSQL,
            "mariadb": cls.MYSQL,
            "postgresql": cls.POSTGRESQL,
            "postgres": cls.POSTGRESQL,
            "pg": cls.POSTGRESQL,
            "sqlite": cls.SQLITE,
            "sqlite3": cls.SQLITE,
        }

        try:
            return aliases[name]
        except KeyError:
            raise UnsupportedDialectError(value) from None


class ScriptKind(str, Enum):
    """Logical kinds of SQL script."""

    INIT = "init"
    DDL = "ddl"
    DML = "dml"


@dataclass(frozen=True)
class DbDialect:
    """
    Per-vendor facts needed by the upgrade process.

    One instance exists per DbType; obtain it through ``for_type`` or
    ``for_engine`` rather than constructing it.
    """

    db_type: DbType
    table_exists_sql: str
    column_exists_sql: str
    lower_case_identifiers: bool = False

    @classmethod
    def for_type(cls, db_type: "DbType | str") -> "DbDialect":
        if not isinstance(db_type, DbType):
            db_type = DbType.from_string(db_type)
        return _DIALECTS[db_type]

    @classmethod
    def for_engine(cls, engine: Engine) -> "DbDialect":
        return cls.for_type(engine.dialect.name)

    @property
    def name(self) -> str:
        return self.db_type.value

    def script_path(self, kind: ScriptKind, step_id: str | None = None) -> str:
        """
        Build the resource path of a script.

        Args:
            kind: Init, DDL or DML script
            step_id: Upgrade step directory, required for DDL and DML

        Returns:
            Path relative to the resource root, always with ``/`` separators
        """
        kind = ScriptKind(kind)
        if kind is ScriptKind.INIT:
            return f"{SQL_DIR}/{SCRIPT_PREFIX}_{self.name}.sql"

        if not step_id:
            raise ValueError(f"A step id is required for {kind.value} scripts")

        return (
            f"{SQL_DIR}/{UPGRADE_DIR}/{step_id}/{self.name.lower()}/"
            f"{SCRIPT_PREFIX}_{kind.value}.sql"
        )

    def normalize_identifier(self, name: str) -> str:
        """Apply the vendor's case rule for unquoted identifiers."""
        return name.lower() if self.lower_case_identifiers else name

    def table_exists(self, conn: Connection, table_name: str) -> bool:
        """Check whether ``table_name`` exists in the current schema."""
        params = {"table_name": self.normalize_identifier(table_name)}
        return self._exists(conn, self.table_exists_sql, params)

    def column_exists(self, conn: Connection, table_name: str, column_name: str) -> bool:
        """Check whether ``table_name`` has a column named ``column_name``."""
        params = {
            "table_name": self.normalize_identifier(table_name),
            "column_name": self.normalize_identifier(column_name),
        }
        return self._exists(conn, self.column_exists_sql, params)

    def _exists(self, conn: Connection, sql: str, params: dict[str, str]) -> bool:
        try:
            row = conn.execute(text(sql), params).first()
        except SQLAlchemyError as e:
            logger.error(f"Catalog query failed on {self.name}: {e}")
            raise QueryFailed(
                f"Check existence of {params} failed", query=sql, cause=e
            ) from e
        return row is not None


_DIALECTS: dict[DbType, DbDialect] = {
    DbType.MYSQL: DbDialect(
        db_type=DbType.MYSQL,
        table_exists_sql=(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = :table_name"
        ),
        column_exists_sql=(
            "SELECT 1 FROM information_schema.columns "
            "WHERE table_schema = DATABASE() AND table_name = :table_name "
            "AND column_name = :column_name"
        ),
    ),
    DbType.POSTGRESQL: DbDialect(
        db_type=DbType.POSTGRESQL,
        table_exists_sql=(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = :table_name"
        ),
        column_exists_sql=(
            "SELECT 1 FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = :table_name "
            "AND column_name = :column_name"
        ),
        lower_case_identifiers=True,
    ),
    DbType.SQLITE: DbDialect(
        db_type=DbType.SQLITE,
        table_exists_sql=(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND lower(name) = lower(:table_name)"
        ),
        column_exists_sql=(
            "SELECT name FROM pragma_table_info(:table_name) "
            "WHERE lower(name) = lower(:column_name)"
        ),
    ),
}
