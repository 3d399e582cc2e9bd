"""
Resource Folder Size Fix-up

One-off data backfill shipped with the 2.0.6 upgrade: folder rows in
``t_ds_resources`` get their ``size`` recomputed from the files below them.
Failures are reported as NonFatalFixupError values and never raised.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum

from sqlalchemy import text
from sqlalchemy.engine import Engine

from .exceptions import NonFatalFixupError

logger = logging.getLogger(__name__)

RESOURCES_TABLE = "t_ds_resources"


class ResourceType(IntEnum):
    """Discriminator stored in ``t_ds_resources.type``."""

    FILE = 0
    UDF = 1


@dataclass
class FixupOutcome:
    """What a fix-up run did, and what went wrong."""

    folders_updated: dict[ResourceType, int] = field(default_factory=dict)
    errors: list[NonFatalFixupError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class LegacyDataFixup:
    """Recomputes aggregate folder sizes for file and UDF resources."""

    def __init__(self, engine: Engine, table_name: str = RESOURCES_TABLE) -> None:
        self.engine = engine
        self.table_name = table_name

    def update_folder_size_by_type(self, resource_type: ResourceType) -> int:
        """
        Set each folder's size to the total size of the files beneath it.

        Args:
            resource_type: Resource category to process

        Returns:
            Number of folder rows updated
        """
        resource_type = ResourceType(resource_type)
        select_sql = (
            f"SELECT full_name, size, is_directory FROM {self.table_name} "
            f"WHERE type = :type"
        )
        update_sql = (
            f"UPDATE {self.table_name} SET size = :size "
            f"WHERE type = :type AND full_name = :full_name"
        )

        with self.engine.begin() as conn:
            rows = conn.execute(text(select_sql), {"type": int(resource_type)}).fetchall()

            file_sizes = {
                row.full_name: row.size or 0 for row in rows if not row.is_directory
            }
            folders = [row.full_name for row in rows if row.is_directory]

            updates = []
            for folder in folders:
                prefix = folder.rstrip("/") + "/"
                total = sum(
                    size for name, size in file_sizes.items() if name.startswith(prefix)
                )
                updates.append(
                    {"size": total, "type": int(resource_type), "full_name": folder}
                )

            if updates:
                conn.execute(text(update_sql), updates)

        logger.info(
            f"Updated size of {len(updates)} {resource_type.name.lower()} resource folders"
        )
        return len(updates)

    def update_resource_folder_sizes(self) -> FixupOutcome:
        """
        Run the fix-up for every resource type.

        Each type is processed on its own; a failure is recorded in the
        outcome and the next type still runs.
        """
        outcome = FixupOutcome()
        for resource_type in ResourceType:
            try:
                outcome.folders_updated[resource_type] = self.update_folder_size_by_type(
                    resource_type
                )
            except Exception as e:
                outcome.errors.append(
                    NonFatalFixupError(
                        f"Failed to update the folder's size of "
                        f"{resource_type.name.lower()} resources: {e}",
                        resource_type=int(resource_type),
                        cause=e,
                    )
                )
        return outcome
