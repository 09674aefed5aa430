"""Custom exceptions for the application."""

from __future__ import annotations


class DatabaseError(Exception):
    """Raised when a database operation fails."""

    pass


class StatementExecutionError(DatabaseError):
    """Raised when the driver rejects a statement of a query plan."""

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class LLMError(Exception):
    """Raised when LLM returns unexpected response format or fails."""

    pass


class PlanGenerationError(LLMError):
    """Raised when the LLM output cannot be read as a JSON object."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class MalformedPlanError(PlanGenerationError):
    """Raised when the LLM output is JSON but not a valid query plan."""

    pass


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


class UnknownOperationError(ValidationError):
    """Raised when a statement declares an operation we do not support."""

    def __init__(self, operation: str, allowed: tuple[str, ...]) -> None:
        super().__init__(f"Unknown operation: {operation}")
        self.operation = operation
        self.allowed = allowed


class UnknownToolError(ValidationError):
    """Raised when the AI command names a tool that is not registered."""

    def __init__(self, tool: str, available: list[str]) -> None:
        super().__init__(f"Unknown tool: {tool}")
        self.tool = tool
        self.available = available
