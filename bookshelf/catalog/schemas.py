"""
Pydantic schema definitions for the catalog module.

The ``Book`` model is the stored shape of one catalogue entry. It is
validated every time a list is read back from its slot, so records
with an unknown category or status never reach the views. The
``BookForm`` model carries the stricter rules applied when a user
creates or edits a book (ISBN format, minimum lengths). The
``PaginatedBooks`` model bundles a page of books with pagination
metadata so clients know how many pages of results are available.
"""

from typing import List, Optional

from pydantic import BaseModel, Field
from typing_extensions import Literal


Category = Literal["technology", "fiction", "non-fiction", "other"]
Status = Literal["unread", "reading", "completed"]

STATUSES = ("unread", "reading", "completed")

# Sentinel used by the list filters to mean "no constraint"
ALL = "all"


class Book(BaseModel):
    """A single book entry as persisted in the user's list.

    ``isbn`` is only format-checked when the user submits the form;
    records already in the list (the seeded starter books, for
    example) may carry an empty string. ``cover_image`` holds an
    embedded ``data:`` URL or ``None``.
    """

    id: int = Field(ge=1)
    title: str
    author: str
    category: Category
    status: Status = "unread"
    isbn: str = ""
    description: str = ""
    cover_image: Optional[str] = None


class BookForm(BaseModel):
    """The fields a user submits when adding or editing a book."""

    title: str = Field(min_length=2)
    author: str = Field(min_length=2)
    isbn: str = Field(min_length=10, max_length=13, pattern=r"^[0-9-]+$")
    category: Category
    status: Status
    description: str = ""


class StatusChange(BaseModel):
    # None advances unread -> reading -> completed -> unread
    status: Optional[Status] = None


class DescriptionChange(BaseModel):
    description: str = ""


class PaginatedBooks(BaseModel):
    """A wrapper for paginated results returned from ``/books`` endpoint."""

    page: int
    page_size: int
    total: int
    total_pages: int
    items: List[Book]


class CatalogStats(BaseModel):
    total: int
    reading: int
    completed: int
