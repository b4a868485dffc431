import re

import pytz

from services.errors import ValidationError
from time_helpers import parse_iso_datetime

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["1", "true", "yes", "on"]


def require_text(data, key, label=None):
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label or key} is required")
    return str(value).strip()


def parse_timestamp(raw, label):
    """Parse a request timestamp or raise a 400."""
    if raw is None or raw == '':
        raise ValidationError(f"{label} is required")
    value = parse_iso_datetime(raw)
    if value is None:
        raise ValidationError(f"Invalid {label} timestamp: {raw}")
    return value


def parse_time_zone(raw, default):
    name = (str(raw).strip() if raw else '') or default
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Unknown time zone: {name}")
    return name


def parse_optional_positive_int(raw, label):
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{label} must be a whole number")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number")
    if value < 1:
        raise ValidationError(f"{label} must be at least 1")
    return value


def parse_tag_ids(raw):
    """Tag ids in request order, duplicates dropped."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError('tags must be a list of tag ids')
    ids = []
    seen = set()
    for val in raw:
        try:
            tag_id = int(val)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid tag id: {val}")
        if tag_id not in seen:
            seen.add(tag_id)
            ids.append(tag_id)
    return ids


def parse_color(raw):
    value = str(raw or '').strip()
    if not HEX_COLOR_RE.match(value):
        raise ValidationError(f"Invalid color: {raw}")
    return value.lower()
