from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_user, sign_in_as
from models import utcnow
from services import access_gate


@pytest.mark.parametrize('path', [
    '/auth/sign-in', '/auth/sign-up', '/auth/change-password',
    '/api/health', '/static/app.css', '/favicon.ico',
])
def test_public_paths(path):
    assert access_gate.is_public_path(path)


@pytest.mark.parametrize('path', ['/', '/api/events', '/auth/sign-input', '/statics'])
def test_non_public_paths(path):
    assert not access_gate.is_public_path(path)


def test_health_needs_no_session(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok'}


def test_anonymous_page_request_redirects_to_sign_in(client):
    res = client.get('/')
    assert res.status_code == 302
    location = urlparse(res.headers['Location'])
    assert location.path == '/auth/sign-in'
    assert parse_qs(location.query) == {'redirect': ['/']}


def test_anonymous_api_request_is_unauthorized(client):
    res = client.get('/api/events')
    assert res.status_code == 401
    location = urlparse(res.get_json()['redirect'])
    assert location.path == '/auth/sign-in'
    assert parse_qs(location.query) == {'redirect': ['/api/events']}


def test_sign_in_page_is_reachable(client):
    res = client.get('/auth/sign-in?redirect=/')
    assert res.status_code == 200


def test_valid_user_passes(auth_client):
    assert auth_client.get('/').status_code == 200
    assert auth_client.get('/api/events').status_code == 200


def test_expired_user_is_sent_to_change_password(app, client):
    user_id = make_user(app, expires_at=utcnow() - timedelta(hours=1))
    sign_in_as(client, user_id)

    res = client.get('/')
    assert res.status_code == 302
    location = urlparse(res.headers['Location'])
    assert location.path == '/auth/change-password'
    assert parse_qs(location.query) == {'expired': ['true']}

    res = client.get('/api/events')
    assert res.status_code == 403


def test_forced_change_flag_is_enforced(app, client):
    user_id = make_user(app, change_required=True)
    sign_in_as(client, user_id)
    assert client.get('/').status_code == 302


def test_expired_user_can_reach_change_password(app, client):
    user_id = make_user(app, expires_at=utcnow() - timedelta(hours=1))
    sign_in_as(client, user_id)
    assert client.get('/auth/change-password?expired=true').status_code == 200
    assert client.get('/api/auth/profile').status_code == 200


def test_profile_fetch_failure_fails_open(app, client, user_id, monkeypatch):
    def broken(uid):
        raise OperationalError('SELECT 1', {}, Exception('database is locked'))

    monkeypatch.setattr(access_gate, 'load_profile', broken)
    sign_in_as(client, user_id)
    assert client.get('/api/events').status_code == 200


def test_decide_without_profile_allows(app):
    with app.app_context():
        assert access_gate.decide('/', 1, fetch_profile=lambda uid: None) == access_gate.ALLOW
        assert access_gate.decide('/', None, fetch_profile=lambda uid: None) == access_gate.SIGN_IN
