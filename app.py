import os
import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, render_template, request, jsonify, redirect, url_for, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

load_dotenv()

from models import db, User
from recurrence import build_recurrence
from time_helpers import server_time_zone, to_local
from services import event_service, profile_service, tag_service
from services.access_gate import enforce_access
from services.errors import CalendarError, ValidationError
from services.validation_service import parse_bool, parse_time_zone, parse_timestamp

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///calendar.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=int(os.environ.get('SESSION_LIFETIME_DAYS', 30)))
app.config['DEFAULT_TIME_ZONE'] = server_time_zone()
app.config['PASSWORD_EXPIRY_DAYS'] = int(os.environ.get('PASSWORD_EXPIRY_DAYS', 15))
app.config['MIN_PASSWORD_LENGTH'] = int(os.environ.get('MIN_PASSWORD_LENGTH', 6))

app.logger.setLevel(getattr(logging, os.environ.get('LOG_LEVEL', 'INFO').upper(), logging.INFO))

db.init_app(app)


def get_current_user():
    """Resolve the signed-in user from the session."""
    user_id = session.get('user_id')
    if user_id:
        return db.session.get(User, user_id)
    return None


with app.app_context():
    db.create_all()


@app.before_request
def _access_gate():
    return enforce_access()


@app.errorhandler(CalendarError)
def _handle_calendar_error(exc):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


@app.errorhandler(HTTPException)
def _handle_http_error(exc):
    if request.path.startswith('/api/'):
        return jsonify({'error': exc.description}), exc.code
    return exc


@app.errorhandler(SQLAlchemyError)
def _handle_db_error(exc):
    db.session.rollback()
    app.logger.exception(f"Database error on {request.method} {request.path}")
    return jsonify({'error': 'Internal server error'}), 500


@app.errorhandler(Exception)
def _handle_unexpected_error(exc):
    db.session.rollback()
    app.logger.exception(f"Unhandled error on {request.method} {request.path}")
    return jsonify({'error': 'Internal server error'}), 500


@app.route('/api/health')
def health():
    return jsonify({'status': 'ok'})


from services import calendar_routes, page_routes, tag_routes, user_routes  # noqa: E402

# Pages
app.add_url_rule('/', 'index', page_routes.index)
app.add_url_rule('/auth/sign-in', 'sign_in_page', page_routes.sign_in_page)
app.add_url_rule('/auth/sign-up', 'sign_up_page', page_routes.sign_up_page)
app.add_url_rule('/auth/change-password', 'change_password_page', page_routes.change_password_page)

# Account
app.add_url_rule('/api/auth/sign-up', 'sign_up', user_routes.sign_up, methods=['POST'])
app.add_url_rule('/api/auth/sign-in', 'sign_in', user_routes.sign_in, methods=['POST'])
app.add_url_rule('/api/auth/sign-out', 'sign_out', user_routes.sign_out, methods=['POST'])
app.add_url_rule('/api/auth/profile', 'user_profile', user_routes.user_profile, methods=['GET', 'POST'])
app.add_url_rule('/api/auth/change-password', 'change_password', user_routes.change_password, methods=['POST'])
app.add_url_rule('/api/current-user', 'current_user_info', user_routes.current_user_info)

# Calendar
app.add_url_rule('/api/events', 'calendar_events', calendar_routes.calendar_events, methods=['GET', 'POST'])
app.add_url_rule('/api/events/<int:event_id>', 'calendar_event', calendar_routes.calendar_event,
                 methods=['GET', 'PATCH', 'DELETE'])
app.add_url_rule('/api/recurrence/preview', 'recurrence_preview', calendar_routes.recurrence_preview,
                 methods=['POST'])

# Tags
app.add_url_rule('/api/tags', 'handle_tags', tag_routes.handle_tags, methods=['GET', 'POST'])
app.add_url_rule('/api/tags/<int:tag_id>', 'handle_tag', tag_routes.handle_tag, methods=['PATCH'])


if __name__ == '__main__':
    app.run(host='0.0.0.0', debug=True)
