"""
Per-request access gate.

Runs before every request: public paths pass, anonymous callers are sent
to sign-in, and callers whose password expired (or was flagged for a forced
change) are sent to the change-password page until they set a new one.
"""

from flask import current_app, jsonify, redirect, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError

from models import db, UserProfile

SIGN_IN_PATH = '/auth/sign-in'
CHANGE_PASSWORD_PATH = '/auth/change-password'

PUBLIC_PATHS = (
    SIGN_IN_PATH,
    '/auth/sign-up',
    CHANGE_PASSWORD_PATH,
    '/api/health',
    '/api/auth/sign-in',
    '/api/auth/sign-up',
    '/static',
    '/favicon.ico',
)

# Reachable while the password is expired, so it can be replaced.
EXPIRED_ALLOWED_PATHS = (
    CHANGE_PASSWORD_PATH,
    '/api/auth/change-password',
    '/api/auth/profile',
    '/api/auth/sign-out',
    '/api/current-user',
)

ALLOW = 'allow'
SIGN_IN = 'sign_in'
CHANGE_PASSWORD = 'change_password'


def _matches(path, prefixes):
    return any(path == p or path.startswith(p + '/') for p in prefixes)


def is_public_path(path):
    return _matches(path or '/', PUBLIC_PATHS)


def load_profile(user_id):
    return UserProfile.query.filter_by(user_id=user_id).first()


def decide(path, user_id, fetch_profile=load_profile, now=None):
    """Return ALLOW, SIGN_IN or CHANGE_PASSWORD for one request."""
    if is_public_path(path):
        return ALLOW
    if not user_id:
        return SIGN_IN
    if _matches(path, EXPIRED_ALLOWED_PATHS):
        return ALLOW

    try:
        profile = fetch_profile(user_id)
    except SQLAlchemyError as exc:
        # Profile is created lazily on the next successful call; don't lock the user out.
        db.session.rollback()
        current_app.logger.warning(f"Access gate could not load profile for user {user_id}, allowing: {exc}")
        return ALLOW

    if profile and profile.needs_password_change(now):
        return CHANGE_PASSWORD
    return ALLOW


def enforce_access():
    """before_request hook. Returns a response to short-circuit, else None."""
    path = request.path
    decision = decide(path, session.get('user_id'), fetch_profile=load_profile)
    if decision == ALLOW:
        return None

    is_api = path.startswith('/api/')
    if decision == SIGN_IN:
        location = url_for('sign_in_page', redirect=path)
        if is_api:
            return jsonify({'error': 'Unauthorized', 'redirect': location}), 401
        return redirect(location)

    location = url_for('change_password_page', expired='true')
    if is_api:
        return jsonify({'error': 'Password expired', 'redirect': location}), 403
    return redirect(location)
