"""Account, session and profile routes."""


def _safe_redirect_target(raw):
    target = str(raw or '').strip()
    if not target.startswith('/') or target.startswith('//'):
        return '/'
    return target


def sign_up():
    import app as a

    User = a.User
    ValidationError = a.ValidationError
    app = a.app
    db = a.db
    jsonify = a.jsonify
    profile_service = a.profile_service
    request = a.request
    session = a.session
    tag_service = a.tag_service

    data = request.get_json(silent=True) or {}
    email = str(data.get('email') or '').strip().lower()
    password = str(data.get('password') or '')
    min_length = app.config['MIN_PASSWORD_LENGTH']

    if not email or '@' not in email:
        raise ValidationError('A valid email is required')
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
    if User.query.filter_by(email=email).first():
        raise ValidationError('An account with that email already exists')

    user = User(email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    tag_service.ensure_default_tags(user.id)
    db.session.commit()
    profile_service.ensure_profile(user)

    session['user_id'] = user.id
    session.permanent = True
    app.logger.info(f"Signed up user {user.id}")
    return jsonify({'success': True, 'user_id': user.id, 'email': user.email}), 201


def sign_in():
    import app as a

    User = a.User
    app = a.app
    jsonify = a.jsonify
    profile_service = a.profile_service
    request = a.request
    session = a.session

    data = request.get_json(silent=True) or {}
    email = str(data.get('email') or '').strip().lower()
    password = str(data.get('password') or '')

    user = User.query.filter_by(email=email).first() if email else None
    if not user or not user.check_password(password):
        app.logger.info(f"Failed sign-in for {email or '<blank>'}")
        return jsonify({'error': 'Invalid email or password'}), 401

    session['user_id'] = user.id
    session.permanent = True
    profile = profile_service.ensure_profile(user)
    app.logger.info(f"Signed in user {user.id}")

    target = _safe_redirect_target(data.get('redirect'))
    if profile.needs_password_change():
        target = a.url_for('change_password_page', expired='true')
    return jsonify({'success': True, 'user_id': user.id, 'email': user.email, 'redirect': target})


def sign_out():
    import app as a

    jsonify = a.jsonify
    session = a.session

    session.pop('user_id', None)
    return jsonify({'success': True})


def current_user_info():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if user:
        return jsonify(user.to_dict())
    return jsonify({'user_id': None, 'email': None})


def user_profile():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify
    profile_service = a.profile_service
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    if request.method == 'GET':
        profile = profile_service.get_profile(user.id)
        if not profile:
            return jsonify({'error': 'Profile not found'}), 404
        return jsonify(profile.to_dict())

    data = request.get_json(silent=True) or {}
    profile = profile_service.upsert_profile(user, email=data.get('email'))
    return jsonify(profile.to_dict())


def change_password():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify
    profile_service = a.profile_service
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Unauthorized'}), 401

    data = request.get_json(silent=True) or {}
    profile = profile_service.change_password(
        user,
        str(data.get('newPassword') or ''),
        current_password=data.get('currentPassword'),
    )
    return jsonify({
        'message': 'Password updated successfully',
        'passwordExpiresAt': profile.to_dict()['passwordExpiresAt'],
    })
