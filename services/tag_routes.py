"""Tag route handlers. Tags are always scoped to the signed-in user."""


def handle_tags():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request
    tag_service = a.tag_service

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        tag = tag_service.create_tag(user.id, data)
        return jsonify(tag.to_dict()), 201

    return jsonify([t.to_dict() for t in tag_service.list_tags(user.id)])


def handle_tag(tag_id):
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request
    tag_service = a.tag_service

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    data = request.get_json(silent=True) or {}
    tag = tag_service.update_tag(user.id, tag_id, data)
    return jsonify(tag.to_dict())
