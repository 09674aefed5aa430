"""Plan execution module.

Contains the statement executor, result formatter and tool registry.
"""

from .executor import PlanResult, StatementExecutor
from .formatter import format_result
from .tools import ToolRegistry, build_tool_registry

__all__ = [
    "PlanResult",
    "StatementExecutor",
    "format_result",
    "ToolRegistry",
    "build_tool_registry",
]
