# bookshelf/errors.py
from typing import Dict


class BookshelfError(Exception):
    """Base class for errors raised by the Bookshelf service."""


class BookFormError(BookshelfError):
    """A submitted book form failed validation.

    ``errors`` maps each failing field to a human-readable message. All
    failing fields are reported together so the client can show them
    inline in one pass.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class AuthenticationError(BookshelfError):
    """Unknown email or wrong password."""


class RegistrationError(BookshelfError):
    """Registration payload rejected (bad email, short password, ...)."""


class DuplicateEmailError(RegistrationError):
    """An account already exists for this email."""


class SlotError(BookshelfError):
    """A durable slot exists but cannot be read or decoded."""
