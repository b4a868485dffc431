"""Calendar event route handlers."""


def calendar_events():
    import app as a

    event_service = a.event_service
    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        event = event_service.create_event(user, data)
        return jsonify({'id': event.id}), 201

    events = event_service.list_events(user.id)
    return jsonify([ev.to_display_dict() for ev in events])


def calendar_event(event_id):
    import app as a

    event_service = a.event_service
    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    if request.method == 'DELETE':
        event_service.delete_event(user, event_id)
        return '', 204

    if request.method == 'PATCH':
        data = request.get_json(silent=True) or {}
        event = event_service.update_event(user, event_id, data)
        return jsonify({'id': event.id})

    event = event_service.get_user_event(user.id, event_id)
    return jsonify(event.to_display_dict())


def recurrence_preview():
    """Encode a recurrence config without saving anything."""
    import app as a

    ValidationError = a.ValidationError
    build_recurrence = a.build_recurrence
    get_current_user = a.get_current_user
    jsonify = a.jsonify
    parse_bool = a.parse_bool
    parse_time_zone = a.parse_time_zone
    parse_timestamp = a.parse_timestamp
    request = a.request
    to_local = a.to_local

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    data = request.get_json(silent=True) or {}
    config = data.get('recurrence')
    if not isinstance(config, dict):
        raise ValidationError('recurrence must be an object')
    all_day = parse_bool(data.get('allDay'))
    tz_name = parse_time_zone(data.get('timeZone'), a.app.config['DEFAULT_TIME_ZONE'])
    start = to_local(parse_timestamp(data.get('start'), 'start'), tz_name)
    end = to_local(parse_timestamp(data.get('end'), 'end'), tz_name)

    result = build_recurrence(config, start, end, all_day, to_local_fn=lambda v: to_local(v, tz_name))
    if result is None:
        return jsonify({'rrule': None})
    return jsonify(result.to_dict())
