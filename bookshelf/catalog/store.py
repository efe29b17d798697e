"""
Per-user data store for the catalogue.

A ``CatalogStore`` owns the in-memory list of ``Book`` records for one
user and mirrors it to a single slot in ``SlotStorage``. The list is
read once by ``load()`` and the whole list is written back after every
mutation; there is no incremental persistence. ``CatalogRegistry``
hands out one store per user so that the list is loaded only once per
process.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from ..errors import SlotError
from ..storage import SlotStorage
from .schemas import STATUSES, Book, CatalogStats


logger = logging.getLogger(__name__)

# Starter list written the first time a user opens an empty catalogue
DEFAULT_BOOKS: List[Dict[str, Any]] = [
    {"id": 1, "title": "The Pragmatic Programmer", "author": "Dave Thomas",
     "category": "technology", "status": "completed"},
    {"id": 2, "title": "Clean Code", "author": "Robert C. Martin",
     "category": "technology", "status": "reading"},
    {"id": 3, "title": "Design Patterns", "author": "Erich Gamma",
     "category": "technology", "status": "unread"},
]

Fields = Union[Mapping[str, Any], BaseModel]


def _as_dict(fields: Fields) -> Dict[str, Any]:
    if isinstance(fields, BaseModel):
        return fields.model_dump()
    return dict(fields)


def next_status(status: str) -> str:
    """unread -> reading -> completed -> unread."""
    idx = STATUSES.index(status) if status in STATUSES else -1
    return STATUSES[(idx + 1) % len(STATUSES)]


class CatalogStore:
    """The authoritative book list for one user."""

    def __init__(self, storage: SlotStorage, key: str, seed: bool = True):
        self.storage = storage
        self.key = key
        self.seed = seed
        self._books: List[Book] = []
        self._loaded = False
        # Reentrant: mutations call load() and update() under the same lock
        self._lock = threading.RLock()

    @property
    def books(self) -> List[Book]:
        with self._lock:
            if not self._loaded:
                self.load()
            return list(self._books)

    def load(self) -> List[Book]:
        """Read the persisted list, seeding it when the slot is empty.

        Never raises: unreadable or malformed slots are logged and
        treated as an empty list. A corrupt slot is left on disk as is
        until the next mutation overwrites it.
        """
        with self._lock:
            self._loaded = True
            try:
                raw = self.storage.read(self.key)
            except SlotError as exc:
                logger.error("Error loading books from %s: %s", self.key, exc)
                self._books = []
                return []

            if raw is None:
                self._books = (
                    [Book(**entry) for entry in DEFAULT_BOOKS] if self.seed else []
                )
                self._save()
                return list(self._books)

            try:
                if not isinstance(raw, list):
                    raise TypeError(f"expected a list, got {type(raw).__name__}")
                self._books = [Book(**entry) for entry in raw]
            except (TypeError, ValidationError) as exc:
                logger.error("Discarding malformed book list in %s: %s", self.key, exc)
                self._books = []
            return list(self._books)

    def persist(self, books: List[Book]) -> None:
        """Replace the list and overwrite the slot with it."""
        with self._lock:
            self._books = list(books)
            self._loaded = True
            self._save()

    def _save(self) -> None:
        payload = [b.model_dump() for b in self._books]
        try:
            self.storage.write(self.key, payload)
        except SlotError as exc:
            # The in-memory list keeps the mutation; it is lost on restart.
            logger.error("Error saving books to %s: %s", self.key, exc)

    def get(self, book_id: int) -> Optional[Book]:
        return next((b for b in self.books if b.id == book_id), None)

    def next_id(self) -> int:
        books = self.books
        return max(b.id for b in books) + 1 if books else 1

    def add(self, record: Fields) -> List[Book]:
        """Append a new record, assigning the next sequential id.

        Any ``id`` present in ``record`` is ignored.
        """
        fields = _as_dict(record)
        fields.pop("id", None)
        with self._lock:
            book = Book(id=self.next_id(), **fields)
            self._books = self.books + [book]
            self._save()
            books = list(self._books)
        logger.info("Added book %d to %s", book.id, self.key)
        return books

    def update(self, book_id: int, fields: Fields) -> List[Book]:
        """Merge ``fields`` into the record with ``book_id``.

        The id of the record is preserved even when ``fields`` carries
        one. Unknown ids are logged and leave the list unchanged.
        """
        changes = _as_dict(fields)
        changes.pop("id", None)
        with self._lock:
            books = self.books
            for i, book in enumerate(books):
                if book.id == book_id:
                    merged = book.model_dump()
                    merged.update(changes)
                    merged["id"] = book_id
                    books[i] = Book(**merged)
                    break
            else:
                logger.warning("Update skipped: no book %d in %s", book_id, self.key)
                return books
            self._books = books
            self._save()
            return list(self._books)

    def remove(self, book_id: int) -> List[Book]:
        """Drop the record with ``book_id``; removing twice is harmless."""
        with self._lock:
            before = self.books
            after = [b for b in before if b.id != book_id]
            if len(after) == len(before):
                logger.info("Remove of unknown book %d in %s", book_id, self.key)
            self._books = after
            self._save()
            return list(self._books)

    def set_status(self, book_id: int, status: Optional[str] = None) -> List[Book]:
        """Set an explicit status, or advance to the next one."""
        with self._lock:
            book = self.get(book_id)
            if book is None:
                logger.warning("Status change skipped: no book %d in %s", book_id, self.key)
                return self.books
            return self.update(book_id, {"status": status or next_status(book.status)})

    def stats(self) -> CatalogStats:
        books = self.books
        return CatalogStats(
            total=len(books),
            reading=sum(1 for b in books if b.status == "reading"),
            completed=sum(1 for b in books if b.status == "completed"),
        )


class CatalogRegistry:
    """One ``CatalogStore`` per user, created on first use."""

    def __init__(self, storage: SlotStorage, seed: bool = True):
        self.storage = storage
        self.seed = seed
        self._stores: Dict[int, CatalogStore] = {}
        self._lock = threading.Lock()

    def for_user(self, user_id: int) -> CatalogStore:
        with self._lock:
            store = self._stores.get(user_id)
            if store is None:
                store = CatalogStore(self.storage, f"books/{user_id}", seed=self.seed)
                store.load()
                self._stores[user_id] = store
            return store
