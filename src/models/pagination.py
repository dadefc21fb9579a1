"""Pagination models for list queries."""

from dataclasses import dataclass
from typing import Any, List


@dataclass(frozen=True)
class PaginationMeta:
    """Page metadata computed from the total count of matching products."""

    page: int
    limit: int
    total: int  # Matching records ignoring pagination
    total_page: int

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPage": self.total_page,
        }


@dataclass(frozen=True)
class ProductListResult:
    """One page of products with its metadata."""

    meta: PaginationMeta
    result: List[dict[str, Any]]
