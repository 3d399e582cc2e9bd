"""
Script Executor

Loads a SQL script by its resource path and runs its statements in order
against a connection held only for the duration of the call.
"""

import logging
import time
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import QueryFailed, ScriptExecutionFailed, ScriptNotFound
from .script_reader import ScriptResource, read_script

logger = logging.getLogger(__name__)


class ScriptExecutor:
    """
    Executes SQL script resources.

    Each statement is committed on its own: a failing statement stops the
    script but leaves earlier statements applied.
    """

    def __init__(self, engine: Engine, resource_root: str | Path = ".") -> None:
        """
        Initialize script executor.

        Args:
            engine: SQLAlchemy engine providing connections
            resource_root: Directory that resource paths are relative to
        """
        self.engine = engine
        self.resource_root = Path(resource_root)

    def resolve(self, resource_path: str) -> Path:
        """
        Resolve a resource path to an existing file.

        Raises:
            ScriptNotFound: If no file exists at the path
        """
        file_path = self.resource_root / resource_path
        if not file_path.is_file():
            raise ScriptNotFound(resource_path).with_context(
                resource_root=str(self.resource_root)
            )
        return file_path

    def load(self, resource_path: str) -> ScriptResource:
        """
        Read and split a script.

        Raises:
            ScriptNotFound: If the script does not exist
            ScriptExecutionFailed: If the file cannot be read or decoded
        """
        file_path = self.resolve(resource_path)
        try:
            return read_script(file_path, resource_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read sql file {resource_path}: {e}")
            raise ScriptExecutionFailed(resource_path, 0, "", e) from e

    def execute(self, resource_path: str) -> int:
        """
        Execute every statement of a script.

        Args:
            resource_path: Path relative to the resource root

        Returns:
            Number of statements executed

        Raises:
            ScriptNotFound: If the script does not exist
            ScriptExecutionFailed: If any statement fails
        """
        script = self.load(resource_path)
        start_time = time.time()

        try:
            with self.engine.connect() as conn:
                conn = conn.execution_options(no_parameters=True)
                for number, statement in enumerate(script.statements, start=1):
                    logger.debug(
                        f"Executing sql {resource_path} [{number}]: {statement[:100]}"
                    )
                    try:
                        conn.exec_driver_sql(statement)
                        conn.commit()
                    except SQLAlchemyError as e:
                        raise ScriptExecutionFailed(
                            resource_path, number, statement, e
                        ) from e
        except SQLAlchemyError as e:
            raise QueryFailed(
                f"Cannot obtain a connection to execute {resource_path}: {e}", cause=e
            ) from e

        logger.info(
            f"Executed {len(script)} statements from {resource_path} "
            f"in {time.time() - start_time:.3f}s"
        )
        return len(script)
