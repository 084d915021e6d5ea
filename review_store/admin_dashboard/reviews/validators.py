# Field-level checks shared by the review schema helpers

import math
import re
from typing import Any, Optional

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def to_number(value: Any) -> Optional[float]:
    """Convert ints, floats and numeric strings to a finite float, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def is_required_field_valid(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value.strip() == "":
        return False
    return True


def is_rating_valid(value: Any) -> bool:
    number = to_number(value)
    return number is not None and 1 <= number <= 5


def is_email_valid(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.fullmatch(email) is not None
