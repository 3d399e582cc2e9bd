"""
SQL Script Reader

Splits a SQL script into statements the way the upgrade scripts are
written: one statement per terminator at end of line, ``--`` and ``//``
comment lines, and MySQL-style ``delimiter`` switches for procedures.
"""

from dataclasses import dataclass
from pathlib import Path

DEFAULT_DELIMITER = ";"
_COMMENT_PREFIXES = ("--", "//")


@dataclass(frozen=True)
class ScriptResource:
    """An ordered, immutable sequence of SQL statements read from one file."""

    path: str
    statements: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


def split_statements(content: str) -> list[str]:
    """Split script text into executable statements."""
    statements: list[str] = []
    buffer: list[str] = []
    delimiter = DEFAULT_DELIMITER

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(_COMMENT_PREFIXES):
            continue

        words = trimmed.split()
        if words[0].lower() == "delimiter" and len(words) == 2:
            delimiter = words[1]
            continue

        if trimmed.endswith(delimiter):
            buffer.append(trimmed[: -len(delimiter)])
            statement = "\n".join(buffer).strip()
            if statement:
                statements.append(statement)
            buffer = []
        else:
            buffer.append(line.rstrip())

    # Last statement may lack a terminator
    remainder = "\n".join(buffer).strip()
    if remainder:
        statements.append(remainder)

    return statements


def read_script(file_path: Path, resource_path: str) -> ScriptResource:
    """
    Read a script file into a ScriptResource.

    Args:
        file_path: Location of the file on disk
        resource_path: Logical path used in logs and errors
    """
    content = file_path.read_text(encoding="utf-8")
    return ScriptResource(resource_path, tuple(split_statements(content)))
