import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['DEFAULT_TIME_ZONE'] = 'UTC'
os.environ['SECRET_KEY'] = 'test-secret'

import pytest

from app import app as flask_app
from models import db, User, UserProfile
from services.tag_service import ensure_default_tags


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(app, email='parent@example.com', password='secret1', expires_at=None, change_required=False):
    """Create a user with default tags and a profile; returns the user id."""
    with app.app_context():
        user = User(email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        ensure_default_tags(user.id)
        profile = UserProfile(user_id=user.id, email=email)
        profile.reset_expiry(15)
        profile.password_change_required = change_required
        if expires_at is not None:
            profile.password_expires_at = expires_at
        db.session.add(profile)
        db.session.commit()
        return user.id


def sign_in_as(client, user_id):
    with client.session_transaction() as sess:
        sess['user_id'] = user_id


@pytest.fixture
def user_id(app):
    return make_user(app)


@pytest.fixture
def auth_client(client, user_id):
    sign_in_as(client, user_id)
    return client
