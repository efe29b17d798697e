"""
Route definitions for the catalogue API.

Endpoints under /api/catalog (all require a logged-in user):
- GET    /books                  : list books with search/filters/pagination
- POST   /books                  : add a book
- GET    /books/{book_id}        : get one book
- PUT    /books/{book_id}        : edit a book
- DELETE /books/{book_id}        : delete a book
- PATCH  /books/{book_id}/status : set or advance the reading status
- PATCH  /books/{book_id}/description : edit only the description
- PUT    /books/{book_id}/cover  : upload a cover image
- DELETE /books/{book_id}/cover  : drop the cover image
- GET    /stats                  : dashboard counters
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Optional

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
)
from typing_extensions import Literal

from ..config import MAX_COVER_BYTES, MAX_PAGE_SIZE, PAGE_SIZE
from ..errors import BookFormError
from ..models import PublicUser
from ..session import require_user
from .form import read_cover, validate_book_form
from .schemas import (
    ALL,
    Book,
    CatalogStats,
    DescriptionChange,
    PaginatedBooks,
    StatusChange,
)
from .search import BookQuery, clamp_page, filter_books, total_pages_for, visible_page
from .store import CatalogStore


SortField = Literal["title", "author", "id"]

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def get_store(request: Request, user: PublicUser = Depends(require_user)) -> CatalogStore:
    return request.app.state.catalogs.for_user(user.id)


def _form_error(exc: BookFormError) -> HTTPException:
    return HTTPException(status_code=422, detail={"errors": exc.errors})


@router.get("/books", response_model=PaginatedBooks)
def list_books(
    q: Optional[str] = Query(default=None, description="Search in title or author"),
    category: str = Query(default=ALL, description="Category, or 'all'"),
    status: str = Query(default=ALL, description="Reading status, or 'all'"),
    sort: Optional[SortField] = Query(default=None, description="Sort order"),
    page: int = Query(default=1, ge=1, description="Current page (1-indexed)"),
    page_size: int = Query(default=PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store: CatalogStore = Depends(get_store),
) -> PaginatedBooks:
    """
    Returns one page of the user's books.

    The page number is clamped here, before slicing, so a filter that
    shrinks the result set never leaves the client on an empty page.
    """
    query = BookQuery(
        search_query=q or "",
        category=category,
        status=status,
        page=page,
        page_size=page_size,
        sort=sort,
    )
    books = store.books
    total_pages = total_pages_for(len(filter_books(books, query)), page_size)
    page = clamp_page(page, total_pages)
    result = visible_page(books, replace(query, page=page))

    return PaginatedBooks(
        page=page,
        page_size=page_size,
        total=result.total,
        total_pages=result.total_pages,
        items=result.items,
    )


@router.post("/books", response_model=Book, status_code=201)
def create_book(
    payload: Dict[str, Any] = Body(...),
    store: CatalogStore = Depends(get_store),
) -> Book:
    try:
        form = validate_book_form(payload)
    except BookFormError as exc:
        raise _form_error(exc)
    books = store.add(form)
    return books[-1]


@router.get("/books/{book_id}", response_model=Book)
def get_book(book_id: int, store: CatalogStore = Depends(get_store)) -> Book:
    book = store.get(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.put("/books/{book_id}", response_model=Optional[Book])
def update_book(
    book_id: int,
    payload: Dict[str, Any] = Body(...),
    store: CatalogStore = Depends(get_store),
) -> Optional[Book]:
    """Edit a book. The stored cover is kept; an unknown id returns ``null``."""
    try:
        form = validate_book_form(payload)
    except BookFormError as exc:
        raise _form_error(exc)
    store.update(book_id, form)
    return store.get(book_id)


@router.delete("/books/{book_id}", status_code=204)
def delete_book(book_id: int, store: CatalogStore = Depends(get_store)) -> Response:
    store.remove(book_id)
    return Response(status_code=204)


@router.patch("/books/{book_id}/status", response_model=Optional[Book])
def change_status(
    book_id: int,
    change: Optional[StatusChange] = Body(default=None),
    store: CatalogStore = Depends(get_store),
) -> Optional[Book]:
    store.set_status(book_id, change.status if change else None)
    return store.get(book_id)


@router.patch("/books/{book_id}/description", response_model=Optional[Book])
def change_description(
    book_id: int,
    change: DescriptionChange,
    store: CatalogStore = Depends(get_store),
) -> Optional[Book]:
    """Edit the description alone; the other fields are not re-validated."""
    store.update(book_id, {"description": change.description.strip()})
    return store.get(book_id)


@router.put("/books/{book_id}/cover", response_model=Optional[Book])
def upload_cover(
    book_id: int,
    file: UploadFile = File(...),
    store: CatalogStore = Depends(get_store),
) -> Optional[Book]:
    try:
        # One byte past the limit is enough to reject an oversized upload
        data_url = read_cover(file.file.read(MAX_COVER_BYTES + 1), file.content_type)
    except BookFormError as exc:
        raise _form_error(exc)
    finally:
        file.file.close()
    store.update(book_id, {"cover_image": data_url})
    return store.get(book_id)


@router.delete("/books/{book_id}/cover", response_model=Optional[Book])
def delete_cover(book_id: int, store: CatalogStore = Depends(get_store)) -> Optional[Book]:
    store.update(book_id, {"cover_image": None})
    return store.get(book_id)


@router.get("/stats", response_model=CatalogStats)
def stats(store: CatalogStore = Depends(get_store)) -> CatalogStats:
    return store.stats()
