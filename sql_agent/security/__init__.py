"""Security and validation module.

Contains the deny-list guard applied to every AI-generated statement.
"""

from .sql_guard import DANGEROUS_PATTERNS, OPERATIONS, ValidationOutcome, validate_statement

__all__ = [
    "DANGEROUS_PATTERNS",
    "OPERATIONS",
    "ValidationOutcome",
    "validate_statement",
]
