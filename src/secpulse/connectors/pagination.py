"""Generic cursor-driven pager for remote collections."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results. ``next_cursor=None`` means this was the last page."""

    items: list[T] = field(default_factory=list)
    next_cursor: Any | None = None


FetchPage = Callable[[Any | None, int], Awaitable[Page[T]]]


async def paginate(fetch_page: FetchPage, page_size: int = 100) -> AsyncIterator[list[T]]:
    """Call *fetch_page(cursor, page_size)* until it reports no next cursor.

    The first call gets ``cursor=None``. Pages are yielded lazily and in
    order; the sequence is finite and can only be restarted from the top by
    calling ``paginate`` again.
    """
    cursor: Any | None = None
    while True:
        page = await fetch_page(cursor, page_size)
        yield page.items
        if page.next_cursor is None:
            return
        if page.next_cursor == cursor:
            logger.warning("Pager cursor did not advance (%r), stopping", cursor)
            return
        cursor = page.next_cursor


def next_offset(offset: int, returned: int, page_size: int, total: int | None = None) -> int | None:
    """Next offset for offset/limit APIs, or None when the collection is exhausted."""
    consumed = offset + returned
    if returned == 0 or returned < page_size:
        return None
    if total is not None and consumed >= total:
        return None
    return consumed
