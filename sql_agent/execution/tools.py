"""Registry of tools an AI command can invoke."""

from __future__ import annotations

import logging
from typing import Callable

from ..core.exceptions import UnknownToolError
from ..core.models import DEFAULT_TOOL, QueryPlan
from .executor import PlanResult, StatementExecutor

logger = logging.getLogger(__name__)

ToolHandler = Callable[[QueryPlan], PlanResult]


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, ToolHandler] = {}

    def register(self, name: str, handler: ToolHandler) -> None:
        self._tools[name] = handler

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolHandler:
        handler = self._tools.get(name)
        if handler is None:
            logger.warning(f"Unknown tool requested: {name}")
            raise UnknownToolError(name, self.names())
        return handler

    def run(self, plan: QueryPlan) -> PlanResult:
        return self.get(plan.tool)(plan)


def build_tool_registry(executor: StatementExecutor) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(DEFAULT_TOOL, executor.execute)
    return registry
