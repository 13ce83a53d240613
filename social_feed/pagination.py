"""
Pagination convention shared by every list operation: 1-indexed page,
default page size from settings, has_more = (result count == page size).

has_more is a heuristic. A last page that is exactly full reports
has_more=True even though the next page is empty.
"""
from dataclasses import dataclass
from typing import Optional

from social_feed.config import settings
from social_feed.errors import InvalidPagination


@dataclass(frozen=True)
class PageRequest:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def has_more(self, result_count: int) -> bool:
        return result_count == self.page_size


def page_request(page: int = 1, page_size: Optional[int] = None) -> PageRequest:
    """Validate caller input. Rejects rather than clamps."""
    if page_size is None:
        page_size = settings.default_page_size
    if page < 1:
        raise InvalidPagination(f"page must be >= 1, got {page}")
    if page_size <= 0:
        raise InvalidPagination(f"page_size must be >= 1, got {page_size}")
    if page_size > settings.max_page_size:
        raise InvalidPagination(
            f"page_size must be <= {settings.max_page_size}, got {page_size}"
        )
    return PageRequest(page=page, page_size=page_size)
