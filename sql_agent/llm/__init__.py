"""LLM interaction module.

Contains the chat completions client, prompts and query plan generation.
"""

from .client import LLMError, call_llm, extract_json
from .plan_generator import QueryPlanGenerator, load_prompt_examples, parse_query_plan
from .prompts import QUERY_PLAN_SYSTEM

__all__ = [
    "LLMError",
    "call_llm",
    "extract_json",
    "QueryPlanGenerator",
    "load_prompt_examples",
    "parse_query_plan",
    "QUERY_PLAN_SYSTEM",
]
