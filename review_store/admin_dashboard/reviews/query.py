"""
Turns the list endpoint's loose query parameters into a store filter, a sort
key and pagination bounds.

Only fields listed in ``FILTER_BUILDERS`` can reach the filter, and every
string value is escaped before it is placed in a ``$regex`` clause.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

SORTABLE_FIELDS = ("created_at", "updated_at", "rating", "status")
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10

INTEGER_PREFIX = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ReviewQuery:
    filter: Dict[str, Any]
    sort_field: str
    sort_direction: int
    skip: int
    limit: int
    page: int
    page_size: int
    sort_by_label: str
    sort_dir_label: str


def parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = INTEGER_PREFIX.match(str(value))
    return int(match.group(1)) if match else None


def _exact_text(value: Any) -> Dict[str, str]:
    return {"$regex": f"^{re.escape(str(value))}$", "$options": "i"}


def _contains_text(value: Any) -> Dict[str, str]:
    return {"$regex": re.escape(str(value)), "$options": "i"}


FILTER_BUILDERS: Dict[str, Callable[[Any], Optional[Any]]] = {
    "sku": _contains_text,
    "rating": parse_int,
    "title": _contains_text,
    "text": _contains_text,
    "author": _contains_text,
    "author_email": _contains_text,
    "status": _exact_text,
}


def _positive_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value.strip() or 0) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(1, int(number))


def build_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    query = {}
    for field, build in FILTER_BUILDERS.items():
        value = params.get(field)
        if value is None or value == "":
            continue
        fragment = build(value)
        if fragment is not None:
            query[field] = fragment
    return query


def compile_review_query(params: Optional[Mapping[str, Any]] = None) -> ReviewQuery:
    params = params or {}

    page = _positive_int(params.get("page"), DEFAULT_PAGE)
    page_size = _positive_int(params.get("pageSize"), DEFAULT_PAGE_SIZE)

    sort_by = params.get("sortBy")
    if sort_by not in SORTABLE_FIELDS:
        sort_by = DEFAULT_SORT_FIELD
    sort_direction = 1 if params.get("sortDir") == "asc" else -1

    return ReviewQuery(
        filter=build_filter(params),
        sort_field=sort_by,
        sort_direction=sort_direction,
        skip=(page - 1) * page_size,
        limit=page_size,
        page=page,
        page_size=page_size,
        sort_by_label=sort_by,
        sort_dir_label="asc" if sort_direction == 1 else "desc",
    )
