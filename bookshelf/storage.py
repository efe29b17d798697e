# bookshelf/storage.py
"""
Durable key-value slots backed by JSON files.

Each slot is a single JSON document stored at ``<root>/<key>.json``. A
slot is always read wholesale and overwritten wholesale; there is no
partial update. Writes go through a lock so two requests touching the
same directory never interleave their output.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, Optional

from .errors import SlotError


logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+(/[A-Za-z0-9_-]+)*$")


class SlotStorage:
    """Directory of JSON slots addressed by ``/``-separated keys."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid slot key: {key!r}")
        return self.root / f"{key}.json"

    def read(self, key: str) -> Optional[Any]:
        """Return the decoded slot, or ``None`` when it was never written.

        Raises ``SlotError`` when the file exists but cannot be read or
        is not valid JSON.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise SlotError(f"Cannot read slot {key!r}: {exc}") from exc

    def write(self, key: str, value: Any) -> None:
        """Overwrite the slot with ``value``.

        The document is written to a sibling temp file first and then
        moved into place, so readers never see a half-written slot.
        """
        path = self.path_for(key)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tmp.open("w", encoding="utf-8") as f:
                    json.dump(value, f, ensure_ascii=False, indent=2)
                os.replace(tmp, path)
            except (OSError, TypeError, ValueError) as exc:
                raise SlotError(f"Cannot write slot {key!r}: {exc}") from exc
        logger.debug("Wrote slot %s", key)

