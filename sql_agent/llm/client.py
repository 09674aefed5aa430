"""Client for OpenAI-compatible chat completion APIs."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..core.config import Settings
from ..core.exceptions import LLMError

logger = logging.getLogger(__name__)

__all__ = ["LLMError", "call_llm", "extract_json"]


def call_llm(
    messages: list[dict[str, str]],
    settings: Settings,
    model: str | None = None,
    temperature: float = 0.0,
    max_tokens: int = 1200,
    json_mode: bool = True,
    client: httpx.Client | None = None,
) -> str:
    """Call the chat completions endpoint with proper error handling.

    Args:
        messages: Chat messages to send
        settings: Application settings (base URL, key, timeout)
        model: Model to use (defaults to settings.llm_model if not specified)
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response
        json_mode: Ask the model for a JSON object response
        client: Optional shared httpx client

    Returns:
        Content of the first choice's message
    """
    effective_model = model or settings.llm_model
    payload: dict[str, Any] = {
        "model": effective_model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    headers = {"Content-Type": "application/json"}
    if settings.llm_api_key:
        headers["Authorization"] = f"Bearer {settings.llm_api_key}"

    url = f"{settings.llm_base_url}/v1/chat/completions"
    logger.debug(f"Calling LLM with model={effective_model}, temp={temperature}")

    try:
        if client is not None:
            response = client.post(url, json=payload, headers=headers, timeout=settings.request_timeout)
        else:
            response = httpx.post(url, json=payload, headers=headers, timeout=settings.request_timeout)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        logger.error(f"LLM request timed out after {settings.request_timeout}s")
        raise LLMError(f"LLM request timed out after {settings.request_timeout}s") from e
    except httpx.HTTPStatusError as e:
        logger.error(f"LLM HTTP error: {e.response.status_code} - {e.response.text[:200]}")
        raise LLMError(f"LLM request failed with status {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.error(f"LLM connection error: {e}")
        raise LLMError(f"Failed to connect to LLM: {e}") from e

    try:
        data = response.json()
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM response as JSON: {response.text[:200]}")
        raise LLMError("LLM returned invalid JSON") from e

    # Validate response structure
    if not isinstance(data, dict):
        logger.error(f"Unexpected response type: {type(data)}")
        raise LLMError("LLM response is not a dictionary")

    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        logger.error(f"Missing or invalid 'choices' in response: {data}")
        raise LLMError("LLM response missing 'choices' array")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not message or not isinstance(message, dict):
        logger.error(f"Missing or invalid 'message' in choice: {choices[0]}")
        raise LLMError("LLM response missing message content")

    content = message.get("content") or ""
    logger.debug(f"LLM response length: {len(content)} chars")

    return content


def extract_json(text: str) -> dict[str, Any]:
    """Extract JSON object from LLM response text."""
    if not text:
        logger.warning("Empty text passed to extract_json")
        return {}

    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1 or end <= start:
        logger.warning(f"No JSON object found in text: {text[:100]}...")
        return {}

    snippet = text[start : end + 1]
    try:
        result = json.loads(snippet)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed at position {e.pos}: {e.msg}")
        logger.error(f"Attempted to parse: {snippet[:200]}...")
        return {}

    if not isinstance(result, dict):
        return {}
    logger.debug(f"Successfully extracted JSON with keys: {list(result.keys())}")
    return result
