"""
Validation of the add/edit book form.

``validate_book_form()`` checks the submitted fields against the
``BookForm`` schema and collects every failure into a single
``BookFormError`` mapping field names to messages. ``read_cover()``
turns an uploaded image into the ``data:`` URL stored on the record.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..config import MAX_COVER_BYTES
from ..errors import BookFormError
from .schemas import BookForm


logger = logging.getLogger(__name__)

FORM_FIELDS = ("title", "author", "isbn", "category", "status", "description")

# Messages keyed by (field, pydantic error type); "*" is the per-field fallback
_MESSAGES: Dict[tuple, str] = {
    ("title", "*"): "Title must be at least 2 characters",
    ("author", "*"): "Author name must be at least 2 characters",
    ("isbn", "string_too_short"): "ISBN must be at least 10 characters",
    ("isbn", "string_too_long"): "ISBN must be at most 13 characters",
    ("isbn", "string_pattern_mismatch"): "ISBN may only contain digits and hyphens",
    ("isbn", "*"): "ISBN is required",
    ("category", "*"): "Choose a valid category",
    ("status", "*"): "Choose a valid status",
    ("description", "*"): "Description must be text",
}


def _message_for(field: str, error_type: str) -> str:
    return (
        _MESSAGES.get((field, error_type))
        or _MESSAGES.get((field, "*"))
        or "Invalid value"
    )


def _normalize(data: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for name in FORM_FIELDS:
        if name not in data or data[name] is None:
            continue
        value = data[name]
        cleaned[name] = value.strip() if isinstance(value, str) else value
    return cleaned


def validate_book_form(data: Mapping[str, Any]) -> BookForm:
    """Validate one submitted form.

    Strings are trimmed before the rules run. On failure a
    ``BookFormError`` carries one message per failing field, ordered
    as the fields appear on the form. Unknown keys (``id``,
    ``cover_image``...) are ignored.
    """
    try:
        return BookForm(**_normalize(data))
    except ValidationError as exc:
        found: Dict[str, str] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err.get("loc") else "__all__"
            found.setdefault(field, _message_for(field, err["type"]))
        ordered = {f: found[f] for f in FORM_FIELDS if f in found}
        ordered.update({k: v for k, v in found.items() if k not in ordered})
        raise BookFormError(ordered) from None


def read_cover(
    content: bytes,
    content_type: Optional[str],
    max_bytes: int = MAX_COVER_BYTES,
) -> str:
    """Validate an uploaded cover and return it as a ``data:`` URL."""
    if not content_type or not content_type.lower().startswith("image/"):
        raise BookFormError({"cover_image": "Please upload an image file"})
    if not content:
        raise BookFormError({"cover_image": "The uploaded file is empty"})
    if len(content) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise BookFormError(
            {"cover_image": f"Image size should be less than {limit_mb:g}MB"}
        )
    encoded = base64.b64encode(content).decode("ascii")
    logger.debug("Accepted %s cover of %d bytes", content_type, len(content))
    return f"data:{content_type.lower()};base64,{encoded}"
