"""
Engine Factory

Builds the SQLAlchemy engine that hands out connections to the upgrade.
"""

import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from .config import UpgradeConfig
from .dialect import DbType

logger = logging.getLogger(__name__)

SLOW_STATEMENT_SECONDS = 1.0


def create_upgrade_engine(config: UpgradeConfig) -> Engine:
    """
    Create an engine for the configured database.

    Raises:
        UnsupportedDialectError: If the URL names an unsupported vendor
    """
    url = make_url(config.database_url)
    db_type = DbType.from_string(url.get_backend_name())

    engine_config = {
        "pool_pre_ping": True,
        "echo": config.echo_sql,
    }
    if db_type is not DbType.SQLITE:
        engine_config["pool_recycle"] = config.pool_recycle

    engine = create_engine(url, **engine_config)
    _setup_engine_events(engine)

    logger.info(f"Database engine created for {config.masked_database_url()}")
    return engine


def _setup_engine_events(engine: Engine) -> None:
    """Log statements that take longer than SLOW_STATEMENT_SECONDS."""

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany) -> None:
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany) -> None:
        elapsed = time.perf_counter() - conn.info["query_start_time"].pop(-1)
        if elapsed > SLOW_STATEMENT_SECONDS:
            logger.warning(f"Slow statement ({elapsed:.2f}s): {statement[:100]}...")
