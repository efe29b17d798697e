"""
Catalog package for the Bookshelf service.

This package holds everything behind the "my books" view: the
``Book`` schemas, the per-user ``CatalogStore`` that persists the
list, the pure search/filter/pagination helpers, the add/edit form
validation and the REST routes mounted under ``/api/catalog``.
"""

from .router import router as catalog_router  # noqa: F401
