"""
Version Registry

Reads and writes the single schema-version row. Installations older than
1.2.0 keep the row in ``t_escheduler_version``; newer ones use
``t_ds_version``. The registry works out which table is authoritative and
never writes to a table that does not exist.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .dialect import DbDialect
from .exceptions import QueryFailed, VersionRowMissing, VersionTableMissing
from .version import (
    LEGACY_VERSION_TABLE,
    VERSION_TABLE,
    VERSION_TABLE_THRESHOLD,
    SchemaVersion,
)

logger = logging.getLogger(__name__)

# Markers of installations that predate any version table
LEGACY_QUEUE_TABLE = "t_escheduler_queue"
LEGACY_QUEUE_CREATE_TIME_COLUMN = "create_time"
VERSION_WITH_QUEUE_CREATE_TIME = SchemaVersion("1.0.1")
VERSION_WITH_QUEUE_TABLE = SchemaVersion("1.0.0")


class VersionRegistry:
    """Tracks the installed schema version in the version table."""

    def __init__(self, engine: Engine, dialect: DbDialect | None = None) -> None:
        """
        Initialize version registry.

        Args:
            engine: SQLAlchemy engine providing connections
            dialect: Database dialect, detected from the engine when omitted
        """
        self.engine = engine
        self.dialect = dialect or DbDialect.for_engine(engine)

    @contextmanager
    def connection(self, begin: bool = False) -> Iterator[Connection]:
        """
        Hold a connection for one logical operation.

        Args:
            begin: Run inside a transaction committed on success
        """
        try:
            scope = self.engine.begin() if begin else self.engine.connect()
            with scope as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.error(f"Database connection error: {e}")
            raise QueryFailed(f"Database connection error: {e}", cause=e) from e

    def table_exists(self, table_name: str) -> bool:
        with self.connection() as conn:
            return self.dialect.table_exists(conn, table_name)

    def column_exists(self, table_name: str, column_name: str) -> bool:
        with self.connection() as conn:
            return self.dialect.column_exists(conn, table_name, column_name)

    def get_current_version(self, table_name: str) -> SchemaVersion | None:
        """
        Read the version stored in ``table_name``.

        Returns:
            The stored version, or None when the table has no row

        Raises:
            VersionTableMissing: If the table does not exist
            QueryFailed: If the query cannot be executed
        """
        table_name = self.dialect.normalize_identifier(table_name)
        sql = f"SELECT version FROM {table_name}"

        with self.connection() as conn:
            if not self.dialect.table_exists(conn, table_name):
                raise VersionTableMissing(
                    f"The version table {table_name} does not exist",
                    tables=(table_name,),
                )
            try:
                value = conn.execute(text(sql)).scalar()
            except SQLAlchemyError as e:
                logger.error(f"Get current version from database error, sql: {sql}: {e}")
                raise QueryFailed(
                    f"Get current version from database error, sql: {sql}",
                    query=sql,
                    cause=e,
                ) from e

        if value is None:
            return None
        return SchemaVersion(str(value))

    def existing_version_tables(self) -> list[str]:
        """Version tables present in the database, current name first."""
        with self.connection() as conn:
            return [
                table_name
                for table_name in (VERSION_TABLE, LEGACY_VERSION_TABLE)
                if self.dialect.table_exists(conn, table_name)
            ]

    def read_stored_version(self, tables: list[str]) -> SchemaVersion | None:
        """
        Read the installed version from the first of ``tables`` holding a row.

        An empty ``t_ds_version`` falls through to ``t_escheduler_version``,
        so the version is read back from whichever table it was written to.
        """
        for table_name in tables:
            version = self.get_current_version(table_name)
            if version is not None:
                return version
        return None

    def resolve_version_table(self) -> str:
        """
        Decide which table ``update_version`` writes to.

        Raises:
            VersionTableMissing: If neither version table exists
        """
        tables = self.existing_version_tables()
        if not tables:
            raise VersionTableMissing(
                "The version table does not exist",
                tables=(VERSION_TABLE, LEGACY_VERSION_TABLE),
            )
        if len(tables) == 1:
            return tables[0]

        # Both exist, e.g. halfway through the rename
        installed = self.read_stored_version(tables)
        if installed is not None and installed < VERSION_TABLE_THRESHOLD:
            return LEGACY_VERSION_TABLE
        return VERSION_TABLE

    def update_version(self, version: "SchemaVersion | str") -> str:
        """
        Overwrite the version row with ``version``.

        Returns:
            Name of the table that was written

        Raises:
            VersionTableMissing: If neither version table exists
            VersionRowMissing: If the table holds no row to update
            QueryFailed: If the update cannot be executed
        """
        version = SchemaVersion.parse(version)
        table_name = self.resolve_version_table()
        sql = f"UPDATE {table_name} SET version = :version"

        with self.connection(begin=True) as conn:
            try:
                result = conn.execute(text(sql), {"version": str(version)})
            except SQLAlchemyError as e:
                logger.error(f"Update version error, sql: {sql}: {e}")
                raise QueryFailed(
                    f"Upgrade version error, sql: {sql}", query=sql, cause=e
                ) from e
            if result.rowcount == 0:
                raise VersionRowMissing(table_name)

        logger.info(f"Schema version set to {version} in {table_name}")
        return table_name

    def detect_installed_version(self) -> SchemaVersion:
        """
        Work out which version is installed, including pre-1.0.2 schemas.

        Raises:
            VersionTableMissing: If the installed version cannot be determined
            VersionRowMissing: If every existing version table is empty
        """
        tables = self.existing_version_tables()
        if tables:
            version = self.read_stored_version(tables)
            if version is None:
                raise VersionRowMissing(", ".join(tables))
            return version

        with self.connection() as conn:
            if self.dialect.column_exists(
                conn, LEGACY_QUEUE_TABLE, LEGACY_QUEUE_CREATE_TIME_COLUMN
            ):
                return VERSION_WITH_QUEUE_CREATE_TIME
            if self.dialect.table_exists(conn, LEGACY_QUEUE_TABLE):
                return VERSION_WITH_QUEUE_TABLE

        logger.error("Unable to determine current software version, so cannot upgrade")
        raise VersionTableMissing(
            "Unable to determine current software version",
            tables=(VERSION_TABLE, LEGACY_VERSION_TABLE),
        )
