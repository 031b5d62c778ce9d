import re
from datetime import datetime, timezone


def utc_now():
    """Naive UTC timestamp, the form the DateTime columns store and return."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_datetime(datetime_obj):
    """ISO string for JSON payloads, None passes through."""
    if not datetime_obj:
        return None
    return datetime_obj.isoformat()


def slugify(value):
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or "quiz"


def parse_bool(value, field_name):
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false", "1", "0"):
        return value.lower() in ("true", "1")
    raise ValueError(f"{field_name} must be a boolean.")


def round_half_up(value):
    """Whole-number rounding with .5 going up, unlike Python's round-half-even."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)
