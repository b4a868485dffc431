"""
Recurrence rule encoding.

Turns the recurrence settings collected by the event dialog into an
RRULE-style string plus the occurrence duration stored next to it. The
calendar widget expands the rule client-side, so all timestamps in the rule
are written as local wall-clock time (DTSTART without a zone suffix). That
keeps a 09:00 meeting at 09:00 on both sides of a DST change.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from services.errors import ValidationError
from time_helpers import parse_iso_datetime

RECURRENCE_TYPES = ('none', 'weekly', 'monthly')
WEEKDAY_CODES = ['SU', 'MO', 'TU', 'WE', 'TH', 'FR', 'SA']


@dataclass
class RecurrenceResult:
    rrule: str
    duration_days: Optional[int] = None
    duration_minutes: Optional[int] = None

    def to_dict(self):
        data = {'rrule': self.rrule}
        if self.duration_days is not None:
            data['durationDays'] = self.duration_days
        if self.duration_minutes is not None:
            data['durationMinutes'] = self.duration_minutes
        return data


def format_rule_timestamp(value, all_day):
    """YYYYMMDD for all-day rules, YYYYMMDDTHHMMSS otherwise. No UTC shift."""
    if all_day:
        return value.strftime('%Y%m%d')
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return value.strftime('%Y%m%dT%H%M%S')


def duration_days(start, end):
    """Whole days covered by an all-day occurrence, rounded up, at least 1."""
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def duration_minutes(start, end):
    """Minutes covered by a timed occurrence, at least 1."""
    seconds = (end - start).total_seconds()
    return max(1, int(seconds // 60))


def normalize_type(raw):
    value = str(raw or 'none').strip().lower()
    if value not in RECURRENCE_TYPES:
        raise ValidationError(f"Unsupported recurrence type: {raw}")
    return value


def parse_interval(raw):
    if raw is None or raw == '':
        return 1
    try:
        interval = int(raw)
    except (TypeError, ValueError):
        raise ValidationError('Recurrence interval must be a whole number')
    if interval < 1:
        raise ValidationError('Recurrence interval must be at least 1')
    return interval


def parse_weekdays(raw):
    """Weekday indices (0=Sunday) as a sorted, de-duplicated list."""
    if raw is None:
        return []
    values = raw if isinstance(raw, (list, tuple)) else str(raw).split(',')
    days = set()
    for val in values:
        if isinstance(val, str) and not val.strip():
            continue
        try:
            day = int(val)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid weekday: {val}")
        if not 0 <= day <= 6:
            raise ValidationError(f"Weekday out of range: {day}")
        days.add(day)
    return sorted(days)


def parse_month_day(raw):
    if raw is None or raw == '':
        return None
    try:
        day = int(raw)
    except (TypeError, ValueError):
        raise ValidationError('Recurrence month day must be a whole number')
    if not 1 <= day <= 31:
        raise ValidationError('Recurrence month day must be between 1 and 31')
    return day


def parse_until(raw, to_local_fn=None):
    """Parsed end date, or None when missing or unparseable."""
    value = parse_iso_datetime(raw)
    if value is None:
        return None
    if to_local_fn is not None:
        value = to_local_fn(value)
    return value


def build_rrule(freq, interval, dtstart, all_day, weekdays=None, month_day=None, until=None):
    parts = [f"FREQ={freq.upper()}", f"INTERVAL={interval}", f"DTSTART={format_rule_timestamp(dtstart, all_day)}"]
    if freq == 'weekly' and weekdays:
        parts.append('BYDAY=' + ','.join(WEEKDAY_CODES[d] for d in weekdays))
    if freq == 'monthly' and month_day:
        parts.append(f"BYMONTHDAY={month_day}")
    if until is not None:
        parts.append(f"UNTIL={format_rule_timestamp(until, all_day)}")
    return ';'.join(parts)


def build_recurrence(config, start, end, all_day, to_local_fn=None):
    """
    Encode a recurrence config for an event.

    config keys: type, interval, byWeekday, byMonthDay, until.
    start/end must already be local wall-clock datetimes. to_local_fn, when
    given, maps an aware `until` into the event's zone.

    Returns None for type 'none' (no rule, no duration).
    """
    config = config or {}
    freq = normalize_type(config.get('type'))
    if freq == 'none':
        return None

    interval = parse_interval(config.get('interval'))
    weekdays = parse_weekdays(config.get('byWeekday')) if freq == 'weekly' else []
    month_day = parse_month_day(config.get('byMonthDay')) if freq == 'monthly' else None
    until = parse_until(config.get('until'), to_local_fn)

    rule = build_rrule(freq, interval, start, all_day, weekdays=weekdays, month_day=month_day, until=until)
    if all_day:
        return RecurrenceResult(rule, duration_days=duration_days(start, end))
    return RecurrenceResult(rule, duration_minutes=duration_minutes(start, end))
