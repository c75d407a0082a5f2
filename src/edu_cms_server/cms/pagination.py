"""
Pagination

Offset pagination shared by the category and question listings.

``nextPage`` / ``prevPage`` are booleans, not page numbers; clients compute
the neighbouring page themselves.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

from ..core.errors import InvalidInputError
from ..db.document_store import DocumentStore

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass
class PaginatedResult(Generic[T]):
    docs: List[T]
    total_docs: int
    limit: int
    total_pages: int
    page: int
    next_page: bool
    prev_page: bool

    def map(self, fn: Callable[[T], U]) -> "PaginatedResult[U]":
        return PaginatedResult(
            docs=[fn(doc) for doc in self.docs],
            total_docs=self.total_docs,
            limit=self.limit,
            total_pages=self.total_pages,
            page=self.page,
            next_page=self.next_page,
            prev_page=self.prev_page,
        )

    def meta(self) -> Dict[str, Any]:
        """Listing metadata in the public camelCase shape."""
        return {
            "totalDocs": self.total_docs,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "page": self.page,
            "nextPage": self.next_page,
            "prevPage": self.prev_page,
        }


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_page(docs: List[T], total_docs: int, page: int, limit: int) -> PaginatedResult[T]:
    """
    Assemble a page from an already sliced ``docs`` list and the filtered total.
    """
    total_pages = math.ceil(total_docs / limit)
    return PaginatedResult(
        docs=docs,
        total_docs=total_docs,
        limit=limit,
        total_pages=total_pages,
        page=page,
        next_page=page < total_pages,
        prev_page=page > 1,
    )


async def paginate(
    store: DocumentStore,
    filters: Optional[Mapping[str, Any]] = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> PaginatedResult:
    """
    Count and fetch one page of ``store`` rows matching ``filters``.

    Parameters
    ----------
    store : DocumentStore
        Store exposing ``count(filters)`` and ``find(filters, skip, limit)``.
    filters : Optional[Mapping[str, Any]]
        Equality filters; ``None`` values are ignored by the store.
    page : int
        1-based page number.
    limit : int
        Page size.

    Returns
    -------
    PaginatedResult
        Rows for the page plus listing metadata.
    """
    if page < 1 or limit < 1:
        raise InvalidInputError("page and limit must be positive integers.")

    total_docs = await store.count(filters)
    docs = await store.find(filters, skip=page_offset(page, limit), limit=limit)
    return build_page(docs, total_docs, page, limit)
