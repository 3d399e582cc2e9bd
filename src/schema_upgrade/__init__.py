"""
Schema Upgrade

Initializes and upgrades the scheduler database schema from versioned SQL
scripts, and tracks the installed version in a single-row version table.

Key Features:
- Closed set of dialects (MySQL, PostgreSQL, SQLite) with per-vendor paths
- Strict DDL -> DML -> version write order for each upgrade step
- Resolution of the renamed version table (t_escheduler_version -> t_ds_version)
- Best-effort resource size fix-up that never fails an upgrade
"""

from .dialect import DbDialect, DbType, ScriptKind
from .exceptions import (
    ConfigurationError,
    InvalidSchemaVersion,
    NonFatalFixupError,
    QueryFailed,
    SchemaUpgradeError,
    ScriptExecutionFailed,
    ScriptNotFound,
    UnsupportedDialectError,
    VersionRowMissing,
    VersionTableMissing,
)
from .orchestrator import MigrationOrchestrator, UpgradeReport
from .resource_fixup import FixupOutcome, LegacyDataFixup, ResourceType
from .schema_catalog import MigrationStep, SchemaCatalog
from .script_executor import ScriptExecutor
from .version import (
    LEGACY_VERSION_TABLE,
    VERSION_TABLE,
    VERSION_TABLE_THRESHOLD,
    SchemaVersion,
    compare_versions,
)
from .version_registry import VersionRegistry

__all__ = [
    "DbDialect",
    "DbType",
    "ScriptKind",
    "SchemaVersion",
    "compare_versions",
    "LEGACY_VERSION_TABLE",
    "VERSION_TABLE",
    "VERSION_TABLE_THRESHOLD",
    "ScriptExecutor",
    "VersionRegistry",
    "SchemaCatalog",
    "MigrationStep",
    "LegacyDataFixup",
    "FixupOutcome",
    "ResourceType",
    "MigrationOrchestrator",
    "UpgradeReport",
    # Exceptions
    "SchemaUpgradeError",
    "ConfigurationError",
    "UnsupportedDialectError",
    "InvalidSchemaVersion",
    "ScriptNotFound",
    "ScriptExecutionFailed",
    "VersionTableMissing",
    "VersionRowMissing",
    "QueryFailed",
    "NonFatalFixupError",
]

__version__ = "1.0.0"
