import os
from datetime import datetime, date

import pytz


def server_time_zone():
    """IANA name of the server zone, falling back to UTC."""
    name = (os.environ.get('DEFAULT_TIME_ZONE') or os.environ.get('TZ') or '').strip()
    if name.startswith(':'):
        name = name[1:]
    if name and name in pytz.all_timezones_set:
        return name
    return 'UTC'


def get_zone(tz_name):
    """Return a pytz zone; raises pytz.UnknownTimeZoneError for bad names."""
    return pytz.timezone(tz_name or 'UTC')


def parse_iso_datetime(raw):
    """Parse an ISO-8601 date or date-time; return None on failure.

    Accepts a trailing 'Z'. The result keeps any offset that was given, so
    naive results mean 'local wall-clock time'.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    s = str(raw).strip()
    if not s:
        return None
    if s.endswith('Z') or s.endswith('z'):
        s = s[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(s)
    except (TypeError, ValueError):
        return None


def to_local(value, tz_name):
    """Wall-clock time of value in tz_name. Naive values are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(get_zone(tz_name)).replace(tzinfo=None)


def to_utc_naive(value, tz_name):
    """Naive UTC for storage. Naive values are read as tz_name wall-clock."""
    if value.tzinfo is None:
        value = get_zone(tz_name).localize(value)
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def utc_to_local(value, tz_name):
    """Stored naive UTC -> naive wall-clock time in tz_name."""
    return pytz.UTC.localize(value).astimezone(get_zone(tz_name)).replace(tzinfo=None)
