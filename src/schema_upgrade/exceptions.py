"""
Schema Upgrade Exception Classes
Separates fatal structural failures from best-effort data fix-up failures.
"""

from typing import Any


class SchemaUpgradeError(Exception):
    """
    Base exception class for all schema upgrade errors.

    Provides common functionality for error codes and debugging context.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """
        Initialize base exception.

        Args:
            message: Technical error message for logging
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for reporting.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error": self.error_code,
            "message": str(self),
            "context": self.context,
        }

    def with_context(self, **kwargs: Any) -> "SchemaUpgradeError":
        """
        Add context information to the exception.

        Args:
            **kwargs: Context key-value pairs

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self


class ConfigurationError(SchemaUpgradeError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key


class UnsupportedDialectError(ConfigurationError):
    """Raised when a database vendor is outside the supported set."""

    def __init__(self, dialect_name: str, **kwargs: Any):
        super().__init__(
            f"Unsupported database dialect: {dialect_name!r}",
            config_key="dialect",
            **kwargs,
        )
        self.dialect_name = dialect_name


class InvalidSchemaVersion(SchemaUpgradeError, ValueError):
    """Raised when a version string is not a dotted sequence of integers."""

    def __init__(self, text: str, **kwargs: Any):
        context = kwargs.pop("context", {})
        context["version"] = text
        super().__init__(f"Invalid schema version: {text!r}", context=context, **kwargs)
        self.text = text


class ScriptNotFound(SchemaUpgradeError):
    """Raised when a script resource path does not resolve."""

    def __init__(self, path: str, **kwargs: Any):
        context = kwargs.pop("context", {})
        context["path"] = path
        super().__init__(f"SQL script not found: {path}", context=context, **kwargs)
        self.path = path


class ScriptExecutionFailed(SchemaUpgradeError):
    """Raised when a statement inside a script fails."""

    def __init__(
        self,
        path: str,
        statement_number: int,
        statement: str,
        cause: BaseException,
        **kwargs: Any,
    ):
        """
        Initialize script execution error.

        Args:
            path: Resource path of the script
            statement_number: 1-based position of the failing statement
            statement: The failing statement (truncated for the message)
            cause: Underlying driver error
            **kwargs: Additional arguments for base class
        """
        excerpt = statement if len(statement) <= 200 else statement[:200] + "..."
        context = kwargs.pop("context", {})
        context.update(
            {"path": path, "statement_number": statement_number, "statement": excerpt}
        )
        super().__init__(
            f"Execute sql file {path} failed at statement {statement_number}: {cause}",
            context=context,
            **kwargs,
        )
        self.path = path
        self.statement_number = statement_number
        self.statement = statement
        self.cause = cause


class VersionTableMissing(SchemaUpgradeError):
    """Raised when no usable version table exists."""

    def __init__(self, message: str, tables: tuple[str, ...] = (), **kwargs: Any):
        context = kwargs.pop("context", {})
        if tables:
            context["tables"] = list(tables)
        super().__init__(message, context=context, **kwargs)
        self.tables = tables


class VersionRowMissing(SchemaUpgradeError):
    """Raised when the version table exists but holds no version row."""

    def __init__(self, table: str, **kwargs: Any):
        context = kwargs.pop("context", {})
        context["table"] = table
        super().__init__(
            f"The version table {table} does not contain a version row",
            context=context,
            **kwargs,
        )
        self.table = table


class QueryFailed(SchemaUpgradeError):
    """Raised when a connectivity or query error occurs."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ):
        context = kwargs.pop("context", {})
        if query:
            context["query"] = query
        super().__init__(message, context=context, **kwargs)
        self.query = query
        self.cause = cause


class NonFatalFixupError(SchemaUpgradeError):
    """
    Failure of a best-effort data fix-up.

    Returned as a value by the fix-up routines, never raised by them.
    The caller logs it and carries on.
    """

    def __init__(
        self,
        message: str,
        resource_type: int | None = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ):
        context = kwargs.pop("context", {})
        if resource_type is not None:
            context["resource_type"] = resource_type
        super().__init__(message, context=context, **kwargs)
        self.resource_type = resource_type
        self.cause = cause
