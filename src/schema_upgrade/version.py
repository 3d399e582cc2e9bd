"""
Schema Version

Dotted schema versions with numeric, per-component ordering, and the
version-table constants shared by the registry and the orchestrator.
"""

from functools import total_ordering

from .exceptions import InvalidSchemaVersion

LEGACY_VERSION_TABLE = "t_escheduler_version"
VERSION_TABLE = "t_ds_version"

STEP_SEPARATOR = "_"


@total_ordering
class SchemaVersion:
    """
    A dotted version such as ``1.3.0``.

    Components compare as integers, so ``1.10.0`` sorts after ``1.2.0``.
    Missing trailing components count as zero (``1.2 == 1.2.0``).
    """

    __slots__ = ("_text", "_parts")

    def __init__(self, text: str) -> None:
        text = text.strip() if isinstance(text, str) else ""
        if not text:
            raise InvalidSchemaVersion(text)

        parts = []
        for component in text.split("."):
            if not (component.isascii() and component.isdigit()):
                raise InvalidSchemaVersion(text)
            parts.append(int(component))

        self._text = text
        self._parts = tuple(parts)

    @classmethod
    def parse(cls, value: "str | SchemaVersion") -> "SchemaVersion":
        """Return ``value`` as a SchemaVersion, parsing text when needed."""
        if isinstance(value, SchemaVersion):
            return value
        return cls(value)

    @classmethod
    def from_step_id(cls, step_id: str) -> "SchemaVersion":
        """Parse the target version of a step id: its prefix up to the first ``_``."""
        return cls(step_id.split(STEP_SEPARATOR, 1)[0])

    @property
    def parts(self) -> tuple[int, ...]:
        return self._parts

    def _key(self) -> tuple[int, ...]:
        parts = list(self._parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            try:
                other = SchemaVersion(other)
            except InvalidSchemaVersion:
                return False
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "SchemaVersion | str") -> bool:
        if isinstance(other, str):
            other = SchemaVersion(other)
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"SchemaVersion({self._text!r})"


# Releases before this one kept their version row in the legacy table.
VERSION_TABLE_THRESHOLD = SchemaVersion("1.2.0")


def compare_versions(left: "str | SchemaVersion", right: "str | SchemaVersion") -> int:
    """
    Compare two versions.

    Returns:
        1 if ``left`` is greater, -1 if it is smaller, 0 if they are equal
    """
    left = SchemaVersion.parse(left)
    right = SchemaVersion.parse(right)
    if left == right:
        return 0
    return 1 if left > right else -1


def is_greater_version(left: "str | SchemaVersion", right: "str | SchemaVersion") -> bool:
    """True when ``left`` is strictly greater than ``right``."""
    return compare_versions(left, right) > 0
