"""
Command line entry point for schema initialization and upgrades.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import UpgradeConfig, configure_logging
from .engine import create_upgrade_engine
from .exceptions import SchemaUpgradeError
from .orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-upgrade",
        description="Initialize or upgrade the scheduler database schema",
    )
    parser.add_argument("--env-file", help="Load settings from this .env file")
    parser.add_argument("--database-url", help="SQLAlchemy database URL")
    parser.add_argument("--resource-root", help="Directory containing the sql/ tree")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init", help="Run the full init script")
    upgrade = subparsers.add_parser("upgrade", help="Upgrade to the latest version")
    upgrade.add_argument("--step", help="Apply only this upgrade step, e.g. 1.3.0_schema")
    subparsers.add_parser(
        "bootstrap", help="Init a fresh database or upgrade an existing one (default)"
    )
    subparsers.add_parser("version", help="Print the installed schema version")
    subparsers.add_parser(
        "fix-resource-size", help="Recompute resource folder sizes (best effort)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    args = build_parser().parse_args(argv)

    engine = None
    try:
        config = UpgradeConfig.from_environment(args.env_file)
        if args.database_url:
            config.database_url = args.database_url
        if args.resource_root:
            config.resource_root = Path(args.resource_root)

        configure_logging(config)
        config.validate()
        engine = create_upgrade_engine(config)
        orchestrator = MigrationOrchestrator(engine, config.resource_root)
        command = args.command or "bootstrap"

        if command == "init":
            orchestrator.init_schema()
        elif command == "upgrade" and args.step:
            version = orchestrator.upgrade(args.step)
            print(f"Upgraded schema to {version}")
        elif command == "upgrade":
            report = orchestrator.upgrade_to_latest()
            print(f"Schema version {report.start_version} -> {report.final_version}")
        elif command == "version":
            print(orchestrator.registry.detect_installed_version())
        elif command == "fix-resource-size":
            errors = orchestrator.upgrade_resource_file_size()
            print(f"Resource size fix-up finished with {len(errors)} error(s)")
        else:
            report = orchestrator.bootstrap()
            if report is None:
                print("Schema initialized")
            else:
                print(f"Schema version {report.start_version} -> {report.final_version}")

    except SchemaUpgradeError as e:
        logger.error(f"Schema upgrade failed: {e}")
        return 1
    finally:
        if engine is not None:
            engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
