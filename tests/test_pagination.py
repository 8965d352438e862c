"""Cursor pager tests."""

from secpulse.connectors.pagination import Page, next_offset, paginate


async def _collect(fetch_page, page_size=3):
    pages = []
    async for items in paginate(fetch_page, page_size=page_size):
        pages.append(items)
    return pages


async def test_paginate_follows_offsets_until_exhausted():
    data = list(range(8))
    calls = []

    async def fetch_page(cursor, limit):
        calls.append(cursor)
        offset = cursor or 0
        chunk = data[offset : offset + limit]
        return Page(items=chunk, next_cursor=next_offset(offset, len(chunk), limit, len(data)))

    pages = await _collect(fetch_page)
    assert pages == [[0, 1, 2], [3, 4, 5], [6, 7]]
    assert calls == [None, 3, 6]


async def test_paginate_single_empty_page():
    async def fetch_page(cursor, limit):
        return Page(items=[], next_cursor=None)

    assert await _collect(fetch_page) == [[]]


async def test_paginate_stops_when_cursor_does_not_advance():
    calls = 0

    async def fetch_page(cursor, limit):
        nonlocal calls
        calls += 1
        return Page(items=["x"], next_cursor="same")

    pages = await _collect(fetch_page)
    assert calls == 2
    assert pages == [["x"], ["x"]]


async def test_paginate_is_lazy():
    fetched = []

    async def fetch_page(cursor, limit):
        fetched.append(cursor)
        return Page(items=[cursor], next_cursor=(cursor or 0) + 1)

    async for items in paginate(fetch_page):
        if items == [2]:
            break
    assert fetched == [None, 1, 2]


def test_next_offset():
    assert next_offset(0, 100, 100) == 100
    assert next_offset(100, 40, 100) is None
    assert next_offset(0, 0, 100) is None
    assert next_offset(0, 100, 100, total=100) is None
    assert next_offset(0, 100, 100, total=250) == 100
