"""Query builder module."""

from src.builder.query_builder import RESERVED_QUERY_KEYS, QueryBuilder

__all__ = ["RESERVED_QUERY_KEYS", "QueryBuilder"]
