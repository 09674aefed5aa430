"""Query plan generation: natural language request -> parameterized SQL statements.

Strategy:
1. Describe the live schema in the system prompt
2. Append few-shot examples loaded from YAML
3. Ask the model for a JSON object and validate it into a QueryPlan

The plan is untrusted output; every statement still goes through the
validator before it runs.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError
import yaml

from ..core.config import Settings
from ..core.exceptions import MalformedPlanError, PlanGenerationError, UnknownOperationError
from ..core.models import QueryPlan
from ..schema.cache import format_schema_for_prompt
from ..security.sql_guard import OPERATIONS
from .client import call_llm, extract_json
from .prompts import DIALECT_NAMES, QUERY_PLAN_SYSTEM

logger = logging.getLogger(__name__)


def load_prompt_examples(path: str | Path) -> list[dict[str, Any]]:
    """Load few-shot examples; a missing or unreadable file yields none."""
    examples_path = Path(path)
    if not examples_path.exists():
        logger.warning(f"Prompt examples not found: {examples_path}")
        return []

    try:
        with open(examples_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load prompt examples: {e}")
        return []

    if not isinstance(data, dict):
        logger.warning(f"Prompt examples file has no 'examples' mapping: {examples_path}")
        return []

    examples = [
        ex for ex in data.get("examples", [])
        if isinstance(ex, dict) and ex.get("request") and isinstance(ex.get("response"), dict)
    ]
    logger.info(f"Loaded {len(examples)} prompt examples")
    return examples


def _format_examples(examples: list[dict[str, Any]]) -> str:
    if not examples:
        return ""
    blocks = [
        f"User: \"{ex['request']}\"\nResponse: {json.dumps(ex['response'], indent=2, ensure_ascii=False)}"
        for ex in examples
    ]
    return "\nExamples:\n" + "\n\n".join(blocks)


def _describe_errors(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'plan'}: {err['msg']}"
        for err in error.errors()
    )


def parse_query_plan(content: str) -> QueryPlan:
    """Turn the model's raw answer into a QueryPlan.

    Raises:
        PlanGenerationError: If no JSON object can be read from the answer
        MalformedPlanError: If the JSON does not have the plan shape
        UnknownOperationError: If a statement declares an unsupported operation
    """
    data = extract_json(content)
    if not data:
        raise PlanGenerationError(
            "Failed to generate SQL query: model response is not a JSON object", raw=content
        )

    try:
        plan = QueryPlan.model_validate(data)
    except PydanticValidationError as e:
        details = _describe_errors(e)
        logger.warning(f"Malformed query plan: {details}")
        raise MalformedPlanError(f"Query plan does not match the expected shape: {details}", raw=content) from e

    for statement in plan.queries:
        if statement.operation.strip().upper() not in OPERATIONS:
            logger.warning(f"Unsupported operation in plan: {statement.operation}")
            raise UnknownOperationError(statement.operation, OPERATIONS)

    return plan


class QueryPlanGenerator:
    """Asks the LLM to translate a request into a QueryPlan."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client
        self._examples = load_prompt_examples(settings.prompt_examples_path)

    def build_messages(self, message: str, descriptor: dict[str, list[dict[str, Any]]]) -> list[dict[str, str]]:
        system = QUERY_PLAN_SYSTEM.format(
            schema=format_schema_for_prompt(descriptor) or "(no tables found)",
            dialect=DIALECT_NAMES.get(self._settings.dialect.value, "MySQL"),
            examples=_format_examples(self._examples),
        )
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": message},
        ]

    def generate(self, message: str, descriptor: dict[str, list[dict[str, Any]]]) -> QueryPlan:
        logger.info(f"Generating query plan for: {message[:100]}...")

        content = call_llm(
            self.build_messages(message, descriptor),
            self._settings,
            temperature=0.0,
            max_tokens=1500,
            client=self._client,
        )
        plan = parse_query_plan(content)

        logger.info(f"Generated plan: {len(plan.queries)} statement(s), isBulk={plan.is_bulk}")
        return plan
