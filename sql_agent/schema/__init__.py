"""Schema management module.

Contains schema introspection, caching and prompt formatting.
"""

from .cache import ColumnInfo, SchemaCache, TableInfo, format_schema_for_prompt

__all__ = [
    "ColumnInfo",
    "SchemaCache",
    "TableInfo",
    "format_schema_for_prompt",
]
