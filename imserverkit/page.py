"""Paged query result."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class PageResult:
    """One page of results together with paging information."""

    page_index: int
    page_size: int
    total: int
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_index": self.page_index,
            "page_size": self.page_size,
            "total": self.total,
            "data": self.data,
        }