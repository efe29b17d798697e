"""
Filtering, sorting and pagination over a user's book list.

Everything in this module is a pure function of its arguments: the
full list goes in, the visible page comes out, nothing is mutated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .schemas import ALL, Book


def _norm(s: Optional[str]) -> str:
    """Normalize a string for case-insensitive comparison."""
    return (s or "").strip().lower()


@dataclass(frozen=True)
class BookQuery:
    """UI state driving the list view.

    ``category`` and ``status`` accept the sentinel ``"all"`` (or
    ``None``) to disable the corresponding filter. ``page`` is
    1-indexed and is trusted as given.
    """

    search_query: str = ""
    category: Optional[str] = ALL
    status: Optional[str] = ALL
    page: int = 1
    page_size: int = 5
    sort: Optional[str] = None


@dataclass(frozen=True)
class Page:
    items: List[Book]
    total_pages: int
    total: int


def matches_search(book: Book, search_query: Optional[str]) -> bool:
    """Case-insensitive substring match against title or author."""
    nq = (search_query or "").lower()
    if not nq:
        return True
    return nq in book.title.lower() or nq in book.author.lower()


def matches_category(book: Book, category: Optional[str]) -> bool:
    if category is None or category == ALL:
        return True
    return book.category == category


def matches_status(book: Book, status: Optional[str]) -> bool:
    if status is None or status == ALL:
        return True
    return book.status == status


def filter_books(books: Sequence[Book], query: BookQuery) -> List[Book]:
    """Return the books passing search AND category AND status."""
    return [
        b
        for b in books
        if matches_search(b, query.search_query)
        and matches_category(b, query.category)
        and matches_status(b, query.status)
    ]


SORT_KEYS: Dict[str, Callable[[Book], object]] = {
    "title": lambda b: (_norm(b.title), _norm(b.author)),
    "author": lambda b: (_norm(b.author), _norm(b.title)),
    "id": lambda b: b.id,
}


def sort_books(books: List[Book], sort: Optional[str]) -> List[Book]:
    """Sort by ``title``, ``author`` or ``id``; anything else keeps list order."""
    key = SORT_KEYS.get(sort or "")
    if key is None:
        return list(books)
    return sorted(books, key=key)


def total_pages_for(count: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(count / page_size)


def paginate(books: Sequence[Book], page: int, page_size: int) -> List[Book]:
    """Slice ``[(page-1)*page_size, page*page_size)``.

    Pages outside the available range yield an empty list; the page
    number is never adjusted here.
    """
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(books[start:start + page_size])


def clamp_page(page: int, total_pages: int) -> int:
    """Bring ``page`` back into range after a filter shrank the result set."""
    return min(max(1, page), max(1, total_pages))


def visible_page(books: Sequence[Book], query: BookQuery) -> Page:
    """Derive the visible slice of ``books`` for the given list state."""
    matched = sort_books(filter_books(books, query), query.sort)
    return Page(
        items=paginate(matched, query.page, query.page_size),
        total_pages=total_pages_for(len(matched), query.page_size),
        total=len(matched),
    )
