"""Core infrastructure module.

Contains configuration, database connection pool, models, and exceptions.
"""

from .config import (
    Dialect,
    DatabaseConnection,
    IdentityLookup,
    Settings,
    get_settings,
    get_cached_settings,
    clear_settings_cache,
)
from .db import ConnectionPool, RawResult, create_pool, run_statement
from .exceptions import (
    DatabaseError,
    LLMError,
    MalformedPlanError,
    PlanGenerationError,
    StatementExecutionError,
    UnknownOperationError,
    UnknownToolError,
    ValidationError,
)
from .models import AgentRequest, AgentResponse, QueryPlan, StatementRequest

__all__ = [
    # Config
    "Dialect",
    "DatabaseConnection",
    "IdentityLookup",
    "Settings",
    "get_settings",
    "get_cached_settings",
    "clear_settings_cache",
    # Database
    "ConnectionPool",
    "RawResult",
    "create_pool",
    "run_statement",
    # Exceptions
    "DatabaseError",
    "LLMError",
    "MalformedPlanError",
    "PlanGenerationError",
    "StatementExecutionError",
    "UnknownOperationError",
    "UnknownToolError",
    "ValidationError",
    # Models
    "AgentRequest",
    "AgentResponse",
    "QueryPlan",
    "StatementRequest",
]
