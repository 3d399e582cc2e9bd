"""
Schema Catalog

Discovers the upgrade steps shipped under ``sql/upgrade`` and the product
version recorded in ``sql/soft_version``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .dialect import SQL_DIR, UPGRADE_DIR, DbDialect, ScriptKind
from .exceptions import InvalidSchemaVersion, ScriptNotFound
from .version import SchemaVersion

logger = logging.getLogger(__name__)

SOFT_VERSION_FILE = "soft_version"


@dataclass(frozen=True)
class MigrationStep:
    """One upgrade unit: a version-prefixed directory with a DDL and a DML script."""

    step_id: str
    version: SchemaVersion

    @classmethod
    def from_step_id(cls, step_id: str) -> "MigrationStep":
        return cls(step_id, SchemaVersion.from_step_id(step_id))

    def ddl_path(self, dialect: DbDialect) -> str:
        return dialect.script_path(ScriptKind.DDL, self.step_id)

    def dml_path(self, dialect: DbDialect) -> str:
        return dialect.script_path(ScriptKind.DML, self.step_id)


class SchemaCatalog:
    """Lists the upgrade steps available under a resource root."""

    def __init__(self, resource_root: str | Path = ".") -> None:
        self.resource_root = Path(resource_root)

    @property
    def upgrade_dir(self) -> Path:
        return self.resource_root / SQL_DIR / UPGRADE_DIR

    def list_steps(self) -> list[MigrationStep]:
        """
        Get all upgrade steps ordered by version.

        Returns:
            Steps sorted by their numeric version prefix, empty when
            there is no upgrade directory
        """
        if not self.upgrade_dir.is_dir():
            logger.info(f"No upgrade directory at {self.upgrade_dir}")
            return []

        steps = []
        for entry in self.upgrade_dir.iterdir():
            if not entry.is_dir():
                continue
            try:
                steps.append(MigrationStep.from_step_id(entry.name))
            except InvalidSchemaVersion:
                logger.warning(f"Skipping upgrade directory with no version prefix: {entry.name}")

        return sorted(steps, key=lambda step: step.version)

    def soft_version(self) -> SchemaVersion:
        """
        Read the product version shipped with the scripts.

        Raises:
            ScriptNotFound: If ``sql/soft_version`` is missing
            InvalidSchemaVersion: If its content is not a version
        """
        path = self.resource_root / SQL_DIR / SOFT_VERSION_FILE
        if not path.is_file():
            raise ScriptNotFound(f"{SQL_DIR}/{SOFT_VERSION_FILE}")
        return SchemaVersion(path.read_text(encoding="utf-8").strip())
