from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import re
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import httpx

from .core import (
    AgentRequest,
    AgentResponse,
    DatabaseError,
    LLMError,
    MalformedPlanError,
    PlanGenerationError,
    UnknownOperationError,
    UnknownToolError,
    create_pool,
    get_cached_settings,
)
from .execution import StatementExecutor, ToolRegistry, build_tool_registry
from .llm import QueryPlanGenerator
from .schema import SchemaCache, format_schema_for_prompt

settings = get_cached_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# --- Application lifecycle ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    pool = create_pool(settings)
    http_client = httpx.Client()
    schema_cache = SchemaCache(pool, settings.db_schema)
    executor = StatementExecutor(pool, max_rows=settings.max_rows)

    app.state.pool = pool
    app.state.schema_cache = schema_cache
    app.state.plan_generator = QueryPlanGenerator(settings, client=http_client)
    app.state.tools = build_tool_registry(executor)

    logger.info("Loading schema on startup...")
    try:
        await asyncio.to_thread(schema_cache.load)
    except DatabaseError as exc:
        # Retried lazily on the first request
        logger.error(f"Schema load failed on startup: {exc}")

    yield

    http_client.close()
    pool.close()


app = FastAPI(title="SQL Agent", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


# --- Structured Error Response ---

class ApiError(Exception):
    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        super().__init__(body.get("error", ""))
        self.status_code = status_code
        self.body = body


def _error_body(error: str, details: str | None = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error, "details": details}
    body.update(extra)
    return body


def raise_error(status_code: int, error: str, details: str | None = None, **extra: Any):
    """Raise an ApiError rendered as a top-level JSON error body."""
    raise ApiError(status_code, _error_body(error, details, **extra))


@app.exception_handler(ApiError)
async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content=_error_body("Invalid request body", details))


# --- Input Sanitization ---

# Maximum message length to prevent abuse
MAX_MESSAGE_LENGTH = 2000

# Patterns that might indicate prompt injection attempts
SUSPICIOUS_PATTERNS = [
    r"ignore\s+(previous|all|above)\s+instructions?",
    r"disregard\s+(previous|all|above)",
    r"forget\s+(everything|all)",
    r"new\s+instructions?:",
    r"system\s*:",
    r"assistant\s*:",
]


def sanitize_user_input(message: str | None) -> str:
    """
    Sanitize user input before it reaches the LLM.

    Suspicious patterns are logged, not rejected; the statement validator
    still screens whatever SQL comes back.
    """
    if not message:
        return ""

    sanitized = message[:MAX_MESSAGE_LENGTH]

    # Remove code fences that might confuse the LLM
    sanitized = re.sub(r"```", "", sanitized)

    for pattern in SUSPICIOUS_PATTERNS:
        if re.search(pattern, sanitized, re.IGNORECASE | re.DOTALL):
            logger.warning(f"Suspicious pattern detected in user input: {pattern}")
            break

    return sanitized.strip()


# --- Dependencies ---

def get_schema_cache(request: Request) -> SchemaCache:
    return request.app.state.schema_cache


def get_plan_generator(request: Request) -> QueryPlanGenerator:
    return request.app.state.plan_generator


def get_tools(request: Request) -> ToolRegistry:
    return request.app.state.tools


# --- API Endpoints ---

@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _schema_payload(schema_cache: SchemaCache) -> dict[str, Any]:
    return {
        "tables": schema_cache.descriptor(),
        "loadedAt": schema_cache.loaded_at.isoformat() if schema_cache.loaded_at else "",
    }


@app.get("/api/schema")
def get_schema(schema_cache: SchemaCache = Depends(get_schema_cache)) -> dict[str, Any]:
    """Table and column descriptors the LLM is shown."""
    try:
        schema_cache.ensure_loaded()
    except DatabaseError as exc:
        raise_error(500, "Database error", str(exc))
    return _schema_payload(schema_cache)


@app.post("/api/schema/refresh")
def refresh_schema(schema_cache: SchemaCache = Depends(get_schema_cache)) -> dict[str, Any]:
    logger.info("Refreshing schema...")
    try:
        schema_cache.load()
    except DatabaseError as exc:
        raise_error(500, "Database error", str(exc))
    return _schema_payload(schema_cache)


@app.post("/api/agent", response_model=AgentResponse)
def agent(
    request: AgentRequest,
    schema_cache: SchemaCache = Depends(get_schema_cache),
    plan_generator: QueryPlanGenerator = Depends(get_plan_generator),
    tools: ToolRegistry = Depends(get_tools),
) -> AgentResponse:
    """Translate a natural-language request into SQL, validate it and run it."""
    message = sanitize_user_input(request.message)
    if not message:
        raise_error(400, "Message is required", "Request body must contain a non-empty 'message'")

    logger.info(f"Agent request: {message[:100]}...")

    try:
        schema_cache.ensure_loaded()
        descriptor = schema_cache.descriptor()

        plan = plan_generator.generate(message, descriptor)
        tool_result = tools.run(plan)
    except MalformedPlanError as exc:
        raise_error(400, "Invalid AI response format", str(exc), aiResponse=exc.raw)
    except PlanGenerationError as exc:
        raise_error(
            400,
            "SQL generation failed",
            str(exc),
            suggestion="Try rephrasing your request with more specific details",
        )
    except UnknownToolError as exc:
        raise_error(400, "Tool not found", str(exc), availableTools=exc.available)
    except UnknownOperationError as exc:
        raise_error(400, "Unknown operation", str(exc), allowedOperations=list(exc.allowed))
    except LLMError as exc:
        raise_error(502, "LLM service error", str(exc))
    except DatabaseError as exc:
        logger.error(f"Database error: {exc}")
        raise_error(500, "Database error", str(exc))
    except Exception as exc:
        logger.exception(f"Unexpected error in /api/agent: {exc}")
        raise_error(500, "Internal server error", str(exc))

    if not tool_result.success:
        logger.warning(f"Plan rejected at statement {tool_result.failed_index}: {tool_result.error}")

    logger.info("Agent response complete")

    return AgentResponse(
        schema_text=format_schema_for_prompt(descriptor),
        ai_command=plan.to_command(),
        tool_result=tool_result.to_dict(),
        explanation=plan.explanation,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sql_agent.main:app", host="0.0.0.0", port=settings.port)
