from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TOOL = "executeCustomSQL"


class StatementRequest(BaseModel):
    """One candidate SQL statement produced by the plan generator."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(alias="query")
    parameters: list[Any] = Field(default_factory=list)
    operation: str

    @field_validator("parameters", mode="before")
    @classmethod
    def _null_parameters(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("parameters")
    @classmethod
    def _scalar_parameters(cls, value: list[Any]) -> list[Any]:
        for item in value:
            if item is not None and not isinstance(item, (str, int, float, bool)):
                raise ValueError(f"parameter values must be scalars, got {type(item).__name__}")
        return value


class QueryPlan(BaseModel):
    """Ordered statements plus the bulk flag, as returned by the LLM."""

    model_config = ConfigDict(populate_by_name=True)

    queries: list[StatementRequest]
    is_bulk: bool = Field(default=False, alias="isBulk")
    explanation: str | None = None
    tool: str = DEFAULT_TOOL

    @field_validator("is_bulk", mode="before")
    @classmethod
    def _null_is_bulk(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("tool", mode="before")
    @classmethod
    def _null_tool(cls, value: Any) -> Any:
        return DEFAULT_TOOL if value is None else value

    def to_command(self) -> dict[str, Any]:
        """The AI command as echoed back to the caller."""
        return {
            "tool": self.tool,
            "parameters": {
                "queries": [q.model_dump(by_alias=True) for q in self.queries],
                "isBulk": self.is_bulk,
            },
            "explanation": self.explanation,
        }


class AgentRequest(BaseModel):
    message: str | None = None


class AgentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_text: str = Field(alias="schema")
    ai_command: dict[str, Any] = Field(alias="aiCommand")
    tool_result: dict[str, Any] = Field(alias="toolResult")
    explanation: str | None = None
