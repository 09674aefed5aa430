"""SQL Agent gateway.

Translates natural-language requests into parameterized SQL with an LLM,
screens every statement against a deny-list and runs the plan, inside a
transaction when it is a bulk plan.

Package Structure:
    core/       - Core infrastructure (config, connection pool, models, exceptions)
    schema/     - Database schema introspection and prompt formatting
    llm/        - LLM interaction (client, prompts, query plan generation)
    security/   - SQL statement validation
    execution/  - Plan execution, result formatting, tool registry
"""

from .core.config import Settings, get_settings, get_cached_settings
from .core.db import ConnectionPool, RawResult, create_pool
from .core.exceptions import (
    DatabaseError,
    LLMError,
    MalformedPlanError,
    PlanGenerationError,
    StatementExecutionError,
    UnknownOperationError,
    UnknownToolError,
    ValidationError,
)
from .core.models import QueryPlan, StatementRequest
from .execution import PlanResult, StatementExecutor, format_result
from .llm import QueryPlanGenerator
from .schema import SchemaCache, format_schema_for_prompt
from .security import ValidationOutcome, validate_statement

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "get_cached_settings",
    "ConnectionPool",
    "RawResult",
    "create_pool",
    "DatabaseError",
    "LLMError",
    "MalformedPlanError",
    "PlanGenerationError",
    "StatementExecutionError",
    "UnknownOperationError",
    "UnknownToolError",
    "ValidationError",
    "QueryPlan",
    "StatementRequest",
    # Pipeline
    "ValidationOutcome",
    "validate_statement",
    "PlanResult",
    "StatementExecutor",
    "format_result",
    # Collaborators
    "QueryPlanGenerator",
    "SchemaCache",
    "format_schema_for_prompt",
]
