"""Map raw driver results to the per-operation result shape."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from ..core.db import RawResult


def format_result(raw: RawResult, operation: str) -> dict[str, Any]:
    """Build the Execution Result for one statement.

    The shape is chosen from the declared operation, not from the SQL text.
    Unrecognized operations fall through to ``{"raw": ..., "operation": ...}``.
    """
    normalized = (operation or "").strip().upper()

    if normalized == "SELECT":
        rows = raw.rows if raw.rows is not None else []
        return {"data": rows, "count": len(rows), "operation": operation}
    if normalized == "INSERT":
        return {"insertId": raw.lastrowid, "affectedRows": raw.rowcount, "operation": operation}
    if normalized in ("UPDATE", "DELETE"):
        return {"affectedRows": raw.rowcount, "operation": operation}

    return {"raw": asdict(raw), "operation": operation}
