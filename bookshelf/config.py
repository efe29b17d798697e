# bookshelf/config.py
"""
Runtime settings for the Bookshelf service.

Every value can be overridden through an environment variable so the
same code runs locally, in a container or under the test-suite (which
passes its own ``data_dir`` to ``create_app``).
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Directory holding the JSON slots (users, per-user book lists)
DATA_DIR = Path(os.getenv("BOOKSHELF_DATA_DIR", "data")).resolve()

LOG_LEVEL = os.getenv("BOOKSHELF_LOG_LEVEL", "INFO").upper()

# Catalogue paging
PAGE_SIZE = int(os.getenv("BOOKSHELF_PAGE_SIZE", "5"))
MAX_PAGE_SIZE = int(os.getenv("BOOKSHELF_MAX_PAGE_SIZE", "100"))

# Cover uploads are embedded in the record as data URLs, keep them small
MAX_COVER_BYTES = int(os.getenv("BOOKSHELF_MAX_COVER_BYTES", str(5 * 1024 * 1024)))

SESSION_COOKIE = os.getenv("BOOKSHELF_SESSION_COOKIE", "bookshelf_session")

# Seed a starter list the first time a user opens their catalogue
SEED_BOOKS = _env_bool("BOOKSHELF_SEED_BOOKS", True)

# Sessions expire this many seconds after login
SESSION_TTL = int(os.getenv("BOOKSHELF_SESSION_TTL", str(7 * 24 * 3600)))

# Set to true when served over HTTPS; plain-HTTP clients drop secure cookies
COOKIE_SECURE = _env_bool("BOOKSHELF_COOKIE_SECURE", False)
