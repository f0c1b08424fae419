import math
from typing import Any, Dict, Generic, List, Tuple, TypeVar

from ..schemas.common import Pagination

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

class Page(Generic[T]):
    """One 1-indexed page of results plus the total they were cut from."""

    def __init__(self, items: List[T], total: int, page: int, limit: int):
        self.items = items
        self.total = total
        self.page = page
        self.limit = limit

    @property
    def pagination(self) -> Pagination:
        return Pagination(
            current_page=self.page,
            total_pages=math.ceil(self.total / self.limit) if self.limit else 0,
            total=self.total,
            has_next_page=(self.page - 1) * self.limit + len(self.items) < self.total,
            has_prev_page=self.page > 1,
        )

    def map(self, func) -> "Page":
        return self.with_items([func(item) for item in self.items])

    def with_items(self, items: List[Any]) -> "Page":
        return Page(items, self.total, self.page, self.limit)

    def to_dict(self, key: str) -> Dict[str, Any]:
        return {key: self.items, "pagination": self.pagination.model_dump()}

def page_window(page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Tuple[int, int, int]:
    """Clamp ``page``/``limit`` and return them with the row offset of the page."""
    page = max(page, 1)
    limit = max(min(limit, MAX_LIMIT), 1)
    return page, limit, (page - 1) * limit
