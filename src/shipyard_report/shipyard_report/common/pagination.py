from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 1
        return math.ceil(self.total / self.page_size)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def clamp_page(page, page_size: int) -> tuple[int, int]:
    """Return (page, offset) with page >= 1."""
    try:
        page = int(page or 1)
    except (TypeError, ValueError):
        page = 1
    page = max(page, 1)
    return page, (page - 1) * page_size


def paginate(items: Sequence[T], page, page_size: int) -> Page[T]:
    page, offset = clamp_page(page, page_size)
    return Page(items=list(items[offset : offset + page_size]), page=page, page_size=page_size, total=len(items))
