"""Validated writes for calendar events and their tag associations."""

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from models import db, Event, EventTag
from recurrence import build_recurrence, duration_days, duration_minutes
from services.errors import NotFoundError, ValidationError
from services.tag_service import ensure_default_tags, resolve_user_tags
from services.validation_service import (
    parse_bool,
    parse_optional_positive_int,
    parse_tag_ids,
    parse_time_zone,
    parse_timestamp,
    require_text,
)
from time_helpers import to_local, to_utc_naive, utc_to_local


def _default_time_zone():
    return current_app.config.get('DEFAULT_TIME_ZONE') or 'UTC'


def _recurrence_config(data):
    config = data.get('recurrence')
    if config is not None and not isinstance(config, dict):
        raise ValidationError('recurrence must be an object')
    return config


def _fill_missing_duration(fields, all_day, local_start, local_end):
    """A stored rule always carries the duration matching all_day."""
    if not fields.get('rrule'):
        fields['duration_days'] = None
        fields['duration_minutes'] = None
        return
    if all_day and not fields.get('duration_days'):
        fields['duration_days'] = duration_days(local_start, local_end)
    if not all_day and not fields.get('duration_minutes'):
        fields['duration_minutes'] = duration_minutes(local_start, local_end)


def _set_tags(event, tags):
    # Flush the deletes before inserting so re-used (event, tag) pairs don't collide.
    event.tag_links.clear()
    db.session.flush()
    for position, tag in enumerate(tags):
        event.tag_links.append(EventTag(tag_id=tag.id, position=position))


def list_events(user_id):
    return (
        Event.query
        .options(selectinload(Event.tag_links).joinedload(EventTag.tag))
        .filter(Event.user_id == user_id)
        .order_by(Event.start.asc(), Event.id.asc())
        .all()
    )


def get_user_event(user_id, event_id):
    event = Event.query.filter_by(id=event_id, user_id=user_id).first()
    if not event:
        raise NotFoundError('Event not found')
    return event


def create_event(user, data):
    data = data or {}
    title = require_text(data, 'title')
    all_day = parse_bool(data.get('allDay'))
    tz_name = parse_time_zone(data.get('timeZone'), _default_time_zone())
    start_raw = parse_timestamp(data.get('start'), 'start')
    end_raw = parse_timestamp(data.get('end'), 'end')
    local_start = to_local(start_raw, tz_name)
    local_end = to_local(end_raw, tz_name)
    start = to_utc_naive(start_raw, tz_name)
    end = to_utc_naive(end_raw, tz_name)
    if end < start:
        raise ValidationError('end must be on/after start')

    fields = {'rrule': None, 'duration_days': None, 'duration_minutes': None}
    config = _recurrence_config(data)
    if config is not None:
        result = build_recurrence(config, local_start, local_end, all_day,
                                  to_local_fn=lambda v: to_local(v, tz_name))
        if result:
            fields.update(rrule=result.rrule, duration_days=result.duration_days,
                          duration_minutes=result.duration_minutes)
    else:
        fields['rrule'] = (str(data.get('rrule') or '').strip()) or None
        fields['duration_days'] = parse_optional_positive_int(data.get('durationDays'), 'durationDays')
        fields['duration_minutes'] = parse_optional_positive_int(data.get('durationMinutes'), 'durationMinutes')
    _fill_missing_duration(fields, all_day, local_start, local_end)

    tags = resolve_user_tags(user.id, parse_tag_ids(data.get('tags')))
    ensure_default_tags(user.id)

    event = Event(
        user_id=user.id,
        title=title,
        description=data.get('description') or None,
        all_day=all_day,
        start=start,
        end=end,
        time_zone=tz_name,
        **fields
    )
    for position, tag in enumerate(tags):
        event.tag_links.append(EventTag(tag_id=tag.id, position=position))
    db.session.add(event)
    db.session.commit()
    current_app.logger.info(f"Created event {event.id} for user {user.id}")
    return event


def update_event(user, event_id, data):
    """Apply a partial update. Keys absent from data are left unchanged."""
    data = data or {}
    event = get_user_event(user.id, event_id)

    # Parse everything up front so a bad field aborts before any change.
    title = require_text(data, 'title') if data.get('title') is not None else None
    all_day = parse_bool(data.get('allDay')) if data.get('allDay') is not None else event.all_day
    tz_name = parse_time_zone(data.get('timeZone'), event.time_zone) if data.get('timeZone') else event.time_zone

    if data.get('start'):
        start_raw = parse_timestamp(data.get('start'), 'start')
        local_start, start = to_local(start_raw, tz_name), to_utc_naive(start_raw, tz_name)
    else:
        start = event.start
        local_start = utc_to_local(start, tz_name)
    if data.get('end'):
        end_raw = parse_timestamp(data.get('end'), 'end')
        local_end, end = to_local(end_raw, tz_name), to_utc_naive(end_raw, tz_name)
    else:
        end = event.end
        local_end = utc_to_local(end, tz_name)
    if end < start:
        raise ValidationError('end must be on/after start')

    fields = {
        'rrule': event.rrule,
        'duration_days': event.duration_days,
        'duration_minutes': event.duration_minutes,
    }
    config = _recurrence_config(data)
    if config is not None:
        result = build_recurrence(config, local_start, local_end, all_day,
                                  to_local_fn=lambda v: to_local(v, tz_name))
        fields = {'rrule': None, 'duration_days': None, 'duration_minutes': None}
        if result:
            fields.update(rrule=result.rrule, duration_days=result.duration_days,
                          duration_minutes=result.duration_minutes)
    else:
        # A stored rule carries its own DTSTART and duration; moving the anchor needs a new rule.
        moved = (start, end, all_day, tz_name) != (event.start, event.end, event.all_day, event.time_zone)
        if event.rrule and moved and 'rrule' not in data:
            raise ValidationError('Send recurrence to move a recurring event')
        if 'rrule' in data:
            fields['rrule'] = (str(data.get('rrule') or '').strip()) or None
        if data.get('durationDays') is not None:
            fields['duration_days'] = parse_optional_positive_int(data.get('durationDays'), 'durationDays')
        if data.get('durationMinutes') is not None:
            fields['duration_minutes'] = parse_optional_positive_int(data.get('durationMinutes'), 'durationMinutes')
    _fill_missing_duration(fields, all_day, local_start, local_end)

    tags = None
    if isinstance(data.get('tags'), list):
        tags = resolve_user_tags(user.id, parse_tag_ids(data.get('tags')))

    if title is not None:
        event.title = title
    if 'description' in data:
        event.description = data.get('description') or None
    event.all_day = all_day
    event.time_zone = tz_name
    event.start = start
    event.end = end
    event.rrule = fields['rrule']
    event.duration_days = fields['duration_days']
    event.duration_minutes = fields['duration_minutes']
    if tags is not None:
        _set_tags(event, tags)

    db.session.commit()
    current_app.logger.info(f"Updated event {event.id} for user {user.id}")
    return event


def delete_event(user, event_id):
    event = get_user_event(user.id, event_id)
    db.session.delete(event)
    db.session.commit()
    current_app.logger.info(f"Deleted event {event_id} for user {user.id}")
