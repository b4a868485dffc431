from datetime import datetime, date

import pytest

from recurrence import (
    build_recurrence,
    duration_days,
    duration_minutes,
    format_rule_timestamp,
)
from services.errors import ValidationError
from time_helpers import to_local


def test_none_type_produces_no_rule():
    start = datetime(2024, 1, 1, 10, 0)
    assert build_recurrence({'type': 'none'}, start, start, False) is None
    assert build_recurrence({}, start, start, True) is None
    assert build_recurrence(None, start, start, False) is None


def test_weekly_rule_with_weekdays_and_interval():
    start = datetime(2024, 1, 1, 10, 0)
    end = datetime(2024, 1, 1, 11, 0)
    result = build_recurrence({'type': 'weekly', 'interval': 2, 'byWeekday': [1, 3]}, start, end, False)
    assert result.rrule == 'FREQ=WEEKLY;INTERVAL=2;DTSTART=20240101T100000;BYDAY=MO,WE'
    assert result.duration_minutes == 60
    assert result.duration_days is None


def test_weekday_codes_are_sunday_first_and_deduplicated():
    start = datetime(2024, 1, 6, 8, 30)
    result = build_recurrence({'type': 'weekly', 'byWeekday': [6, 0, 3, 6]}, start, start, False)
    assert result.rrule == 'FREQ=WEEKLY;INTERVAL=1;DTSTART=20240106T083000;BYDAY=SU,WE,SA'


def test_weekly_without_weekdays_has_no_byday_clause():
    start = datetime(2024, 1, 1, 10, 0)
    result = build_recurrence({'type': 'weekly'}, start, start, False)
    assert 'BYDAY' not in result.rrule


def test_monthly_rule_ignores_weekdays_and_adds_month_day():
    start = datetime(2024, 2, 15, 18, 0)
    end = datetime(2024, 2, 15, 19, 30)
    config = {'type': 'monthly', 'interval': '3', 'byWeekday': [1], 'byMonthDay': 15}
    result = build_recurrence(config, start, end, False)
    assert result.rrule == 'FREQ=MONTHLY;INTERVAL=3;DTSTART=20240215T180000;BYMONTHDAY=15'
    assert result.duration_minutes == 90


def test_all_day_rule_uses_date_only_stamps_and_day_duration():
    start = datetime(2024, 5, 3)
    end = datetime(2024, 5, 5, 12, 0)
    config = {'type': 'weekly', 'byWeekday': [5], 'until': '2024-08-30'}
    result = build_recurrence(config, start, end, True)
    assert result.rrule == 'FREQ=WEEKLY;INTERVAL=1;DTSTART=20240503;BYDAY=FR;UNTIL=20240830'
    assert result.duration_days == 3
    assert result.duration_minutes is None


def test_timed_until_keeps_time_component():
    start = datetime(2024, 1, 1, 10, 0)
    result = build_recurrence({'type': 'monthly', 'until': '2024-06-01T10:00:00'}, start, start, False)
    assert result.rrule.endswith(';UNTIL=20240601T100000')


@pytest.mark.parametrize('until', ['not-a-date', '2024-13-45', 'yesterday'])
def test_invalid_until_is_omitted(until):
    start = datetime(2024, 1, 1, 10, 0)
    result = build_recurrence({'type': 'weekly', 'until': until}, start, start, False)
    assert 'UNTIL' not in result.rrule


def test_anchor_stays_in_local_wall_clock_time():
    # 09:00 in New York on the DST switch day is 13:00 UTC; the rule keeps 09.
    aware = datetime.fromisoformat('2024-03-10T09:00:00-04:00')
    local = to_local(aware, 'America/New_York')
    result = build_recurrence({'type': 'weekly'}, local, local, False)
    assert 'DTSTART=20240310T090000' in result.rrule


def test_aware_until_is_converted_to_event_zone():
    start = datetime(2024, 1, 1, 10, 0)
    config = {'type': 'weekly', 'until': '2024-02-01T03:00:00Z'}
    result = build_recurrence(config, start, start, False,
                              to_local_fn=lambda v: to_local(v, 'America/Los_Angeles'))
    assert result.rrule.endswith('UNTIL=20240131T190000')


def test_duration_minimums():
    start = datetime(2024, 1, 1, 10, 0)
    assert duration_minutes(start, start) == 1
    assert duration_minutes(start, datetime(2024, 1, 1, 10, 0, 30)) == 1
    assert duration_days(start, start) == 1


def test_all_day_duration_rounds_up():
    assert duration_days(datetime(2024, 1, 1), datetime(2024, 1, 2)) == 1
    assert duration_days(datetime(2024, 1, 1), datetime(2024, 1, 2, 0, 1)) == 2
    assert duration_days(datetime(2024, 1, 1), datetime(2024, 1, 4)) == 3


def test_format_rule_timestamp():
    value = datetime(2024, 7, 4, 6, 5, 9)
    assert format_rule_timestamp(value, False) == '20240704T060509'
    assert format_rule_timestamp(value, True) == '20240704'
    assert format_rule_timestamp(date(2024, 7, 4), False) == '20240704T000000'


@pytest.mark.parametrize('config', [
    {'type': 'daily'},
    {'type': 'weekly', 'interval': 0},
    {'type': 'weekly', 'interval': 'two'},
    {'type': 'weekly', 'byWeekday': [7]},
    {'type': 'monthly', 'byMonthDay': 32},
])
def test_invalid_configs_raise_validation_error(config):
    start = datetime(2024, 1, 1, 10, 0)
    with pytest.raises(ValidationError):
        build_recurrence(config, start, start, False)
