"""Bookshelf: a personal book-tracking service."""

__version__ = "1.0.0"
