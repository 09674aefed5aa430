"""Deny-list validation for AI-generated SQL statements.

This is a textual heuristic, not a parser-backed safety proof. It catches the
common catastrophic shapes (schema changes, unconditional mass mutation) and
accepts that a disguised tautology such as ``WHERE 1=2 OR 1=1`` gets through.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Optional

import sqlparse

logger = logging.getLogger(__name__)

# Operations a statement may declare
OPERATIONS = ("SELECT", "INSERT", "UPDATE", "DELETE")

# WHERE clause that is always true: 1=1, 7 = 7, 'a'='a', TRUE
_TAUTOLOGY = r"WHERE\s*\(?\s*(?:(\d+)\s*=\s*\1\b|('[^']*')\s*=\s*\2|TRUE\b)"

DANGEROUS_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("DROP TABLE", re.compile(r"DROP\s+TABLE", re.IGNORECASE)),
    ("DROP DATABASE", re.compile(r"DROP\s+DATABASE", re.IGNORECASE)),
    ("TRUNCATE", re.compile(r"TRUNCATE", re.IGNORECASE)),
    ("ALTER TABLE", re.compile(r"ALTER\s+TABLE", re.IGNORECASE)),
    ("CREATE TABLE", re.compile(r"CREATE\s+TABLE", re.IGNORECASE)),
    (
        "DELETE without effective WHERE",
        re.compile(r"DELETE\s+FROM.*" + _TAUTOLOGY, re.IGNORECASE | re.DOTALL),
    ),
    (
        "UPDATE without effective WHERE",
        re.compile(r"UPDATE.*SET.*" + _TAUTOLOGY, re.IGNORECASE | re.DOTALL),
    ),
]


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(valid=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationOutcome":
        return cls(valid=False, reason=reason)


def _begins_with(text: str, keyword: str) -> bool:
    if not keyword or not text.startswith(keyword):
        return False
    rest = text[len(keyword):]
    return not rest or not (rest[0].isalnum() or rest[0] == "_")


def _statement_count(text: str) -> int:
    return len([stmt for stmt in sqlparse.split(text) if stmt.strip().rstrip(";").strip()])


def validate_statement(text: str, operation: str) -> ValidationOutcome:
    """Decide whether an AI-generated statement may run.

    Args:
        text: SQL statement with ``?`` placeholders
        operation: Operation the generator claims the statement performs

    Returns:
        ValidationOutcome; ``reason`` names the violated rule when rejected
    """
    normalized_query = (text or "").strip().upper()
    normalized_operation = (operation or "").strip().upper()

    if not _begins_with(normalized_query, normalized_operation):
        logger.warning(f"Operation mismatch: declared {operation!r}, query starts {normalized_query[:30]!r}")
        return ValidationOutcome.rejected(
            f"Operation mismatch: query does not begin with declared operation {operation!r}"
        )

    for label, pattern in DANGEROUS_PATTERNS:
        if pattern.search(text):
            logger.warning(f"Dangerous pattern {label!r} in query: {text[:200]}")
            return ValidationOutcome.rejected(
                f"Query contains potentially dangerous operation: {label}"
            )

    if _statement_count(text) > 1:
        logger.warning(f"Multiple statements in query: {text[:200]}")
        return ValidationOutcome.rejected("Multiple statements are not allowed in one query")

    return ValidationOutcome.ok()
