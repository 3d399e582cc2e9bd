"""
Migration Orchestrator

Drives schema initialization and upgrades at service bootstrap.

Structural steps (init script, DDL, DML, version write) are fatal on
failure. The resource size fix-up is best effort: its errors are logged
and the upgrade carries on.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.engine import Engine

from .dialect import DbDialect, ScriptKind
from .exceptions import NonFatalFixupError, SchemaUpgradeError
from .resource_fixup import LegacyDataFixup
from .schema_catalog import MigrationStep, SchemaCatalog
from .script_executor import ScriptExecutor
from .version import LEGACY_VERSION_TABLE, VERSION_TABLE, SchemaVersion
from .version_registry import VersionRegistry

logger = logging.getLogger(__name__)

# The upgrade after which resource folder sizes are recomputed
RESOURCE_FILE_SIZE_VERSION = SchemaVersion("2.0.6")


@dataclass
class UpgradeReport:
    """Summary of an upgrade_to_latest run."""

    start_version: SchemaVersion
    final_version: SchemaVersion
    steps_applied: list[str] = field(default_factory=list)
    fixup_errors: list[NonFatalFixupError] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "start_version": str(self.start_version),
            "final_version": str(self.final_version),
            "steps_applied": list(self.steps_applied),
            "fixup_errors": [error.to_dict() for error in self.fixup_errors],
            "execution_time_ms": self.execution_time_ms,
        }


class MigrationOrchestrator:
    """
    Central entry point for schema initialization and upgrades.

    Runs once, single threaded, before the service accepts traffic.
    Concurrent upgraders are not guarded against.
    """

    def __init__(
        self,
        engine: Engine,
        resource_root: str | Path = ".",
        dialect: DbDialect | None = None,
        executor: ScriptExecutor | None = None,
        registry: VersionRegistry | None = None,
        catalog: SchemaCatalog | None = None,
        fixup: LegacyDataFixup | None = None,
    ) -> None:
        """
        Initialize migration orchestrator.

        Args:
            engine: SQLAlchemy engine providing connections
            resource_root: Directory containing the ``sql`` tree
            dialect: Database dialect, detected from the engine when omitted
            executor: Script executor override
            registry: Version registry override
            catalog: Schema catalog override
            fixup: Resource size fix-up override
        """
        self.engine = engine
        self.dialect = dialect or DbDialect.for_engine(engine)
        self.executor = executor or ScriptExecutor(engine, resource_root)
        self.registry = registry or VersionRegistry(engine, self.dialect)
        self.catalog = catalog or SchemaCatalog(resource_root)
        self.fixup = fixup or LegacyDataFixup(engine)

        logger.info(f"Migration orchestrator initialized for {self.dialect.name}")

    def init_schema(self) -> None:
        """
        Create the full schema from the init script.

        Raises:
            SchemaUpgradeError: If the script is missing or fails
        """
        sql_path = self.dialect.script_path(ScriptKind.INIT)
        try:
            self.executor.execute(sql_path)
        except SchemaUpgradeError as e:
            logger.error(f"Execute initialize sql file: {sql_path} error: {e}")
            raise
        logger.info(f"Success execute the sql initialize file: {sql_path}")

    def upgrade(self, step_id: str) -> SchemaVersion:
        """
        Apply one upgrade step: DDL, then DML, then the version write.

        Nothing is rolled back: a DML failure leaves the DDL applied and
        the version unchanged.

        The target version is parsed from the step id before any script
        runs, so a step id without a valid version prefix fails without
        touching the database.

        Args:
            step_id: Upgrade directory name, e.g. ``1.3.0_schema``

        Returns:
            The version written

        Raises:
            SchemaUpgradeError: If any step fails
        """
        step = MigrationStep.from_step_id(step_id)
        ddl_path = step.ddl_path(self.dialect)
        dml_path = step.dml_path(self.dialect)

        self._run_upgrade_script(step_id, ddl_path)
        self._run_upgrade_script(step_id, dml_path)

        self.registry.update_version(step.version)
        return step.version

    def _run_upgrade_script(self, step_id: str, sql_path: str) -> None:
        try:
            self.executor.execute(sql_path)
        except SchemaUpgradeError as e:
            logger.error(f"Execute sql file failed, schemaDir: {step_id}, script: {sql_path}: {e}")
            raise
        logger.info(f"Success execute the sql file, schemaDir: {step_id}, script: {sql_path}")

    def schema_is_initialized(self) -> bool:
        """Check whether either version table exists."""
        return self.registry.table_exists(VERSION_TABLE) or self.registry.table_exists(
            LEGACY_VERSION_TABLE
        )

    def upgrade_resource_file_size(self) -> list[NonFatalFixupError]:
        """
        Recompute resource folder sizes, logging any failure.

        Returns:
            The errors encountered; the call itself never fails
        """
        outcome = self.fixup.update_resource_folder_sizes()
        for error in outcome.errors:
            logger.error(
                f"Failed to update the folder's size of resource files, "
                f"continuing the upgrade: {error}"
            )
        return outcome.errors

    def upgrade_to_latest(self) -> UpgradeReport:
        """
        Apply every step newer than the installed version.

        Returns:
            Report of the steps applied and any fix-up errors
        """
        start_time = time.time()
        current = self.registry.detect_installed_version()
        report = UpgradeReport(start_version=current, final_version=current)

        steps = self.catalog.list_steps()
        if not steps:
            logger.info("There is no schema to upgrade")
            return report

        for step in steps:
            if step.version <= current:
                continue

            logger.info(f"Upgrade metadata version from {current} to {step.version}")
            self.upgrade(step.step_id)
            report.steps_applied.append(step.step_id)

            if step.version == RESOURCE_FILE_SIZE_VERSION:
                report.fixup_errors.extend(self.upgrade_resource_file_size())

            current = step.version

        soft_version = self.catalog.soft_version()
        if soft_version > current:
            self.registry.update_version(soft_version)
            logger.info(
                f"Upgrade database version from {report.start_version} to {soft_version}"
            )
            current = soft_version

        report.final_version = current
        report.execution_time_ms = (time.time() - start_time) * 1000
        return report

    def bootstrap(self) -> UpgradeReport | None:
        """
        Initialize a fresh database or upgrade an existing one.

        Returns:
            The upgrade report, or None when the schema was initialized
        """
        if self.schema_is_initialized():
            return self.upgrade_to_latest()

        logger.info("Schema is not initialized, running the init script")
        self.init_schema()
        return None
