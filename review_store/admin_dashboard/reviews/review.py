"""
Review schema and the sanctioned ways to build or change a review record.

A review is a plain dict so that stored documents round-trip through the
document store untouched. Validation reports one error at a time: required
fields first in declaration order, then the email shape, then the rating
range.
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from review_store.errors import ValidationError
from .validators import (
    is_email_valid,
    is_rating_valid,
    is_required_field_valid,
    to_number,
)

REQUIRED_FIELDS = ("sku", "rating", "title", "text", "author", "author_email")
SEARCHABLE_FIELDS = REQUIRED_FIELDS + ("status",)

# Never copied from an update payload
PROTECTED_FIELDS = ("id", "created_at", "updated_at")

DEFAULT_STATUS = "pending"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def coerce_rating(value: Any) -> Any:
    """Truncate a numeric rating to int; leave anything else for validation to reject."""
    number = to_number(value)
    if number is None:
        return value
    return int(number)


def validate_review(candidate: Mapping[str, Any], partial: bool = False) -> Optional[str]:
    for field in REQUIRED_FIELDS:
        if partial and field not in candidate:
            continue
        if not is_required_field_valid(candidate.get(field)):
            return f"Missing required field: {field}"

    if "author_email" in candidate and not is_email_valid(candidate["author_email"]):
        return "Invalid email format for author_email."
    if "rating" in candidate and not is_rating_valid(candidate["rating"]):
        return "Rating must be a number between 1 and 5."
    return None


def create_review(candidate: Mapping[str, Any]) -> dict:
    error = validate_review(candidate)
    if error:
        raise ValidationError(error)

    now = _now()
    return {
        "id": str(uuid.uuid4()),
        "sku": candidate["sku"],
        "rating": coerce_rating(candidate["rating"]),
        "title": candidate["title"],
        "text": candidate["text"],
        "author": candidate["author"],
        "author_email": candidate["author_email"],
        "status": candidate.get("status") or DEFAULT_STATUS,
        "created_at": now,
        "updated_at": now,
    }


def update_review(existing: Mapping[str, Any], patch: Mapping[str, Any]) -> dict:
    """
    Merge ``patch`` into a copy of ``existing``.

    Only keys the stored record already carries are copied, so fields such as
    ``status`` stay editable while unknown keys are dropped. ``id`` and both
    timestamps are never taken from the patch.
    """
    updated = dict(existing)
    for key, value in patch.items():
        if key in PROTECTED_FIELDS or key not in existing:
            continue
        updated[key] = coerce_rating(value) if key == "rating" else value

    updated["updated_at"] = _now()
    error = validate_review(updated, partial=True)
    if error:
        raise ValidationError(error)
    return updated


def parse_review(raw: Any) -> Optional[dict]:
    """Rehydrate a stored review, returning None when it is unreadable or invalid."""
    if not raw:
        return None
    record = raw
    if isinstance(raw, (str, bytes)):
        try:
            record = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(record, dict):
        return None
    if validate_review(record, partial=True):
        return None
    return record
