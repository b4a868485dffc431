from flask import current_app

from models import db, UserProfile, utcnow
from services.errors import CalendarError, ValidationError


def _expiry_days():
    return int(current_app.config.get('PASSWORD_EXPIRY_DAYS', 15))


def get_profile(user_id):
    return UserProfile.query.filter_by(user_id=user_id).first()


def ensure_profile(user):
    """Create the profile on first use; an existing one is returned untouched."""
    profile = get_profile(user.id)
    if profile:
        return profile
    profile = UserProfile(user_id=user.id, email=user.email or '')
    profile.reset_expiry(_expiry_days())
    db.session.add(profile)
    db.session.commit()
    current_app.logger.info(f"Created profile for user {user.id}")
    return profile


def upsert_profile(user, email=None):
    """Create or refresh the profile; the expiry window restarts either way."""
    profile = get_profile(user.id)
    if not profile:
        profile = UserProfile(user_id=user.id)
        db.session.add(profile)
    profile.email = (email or '').strip() or user.email or ''
    profile.reset_expiry(_expiry_days())
    db.session.commit()
    return profile


def change_password(user, new_password, current_password=None):
    min_length = int(current_app.config.get('MIN_PASSWORD_LENGTH', 6))
    if not new_password or len(new_password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")

    profile = get_profile(user.id)
    expired = profile is not None and profile.needs_password_change()
    # An expired password is replaced without re-entering it.
    if not expired:
        if not current_password or not user.check_password(current_password):
            raise CalendarError('Current password is incorrect', 403)

    user.set_password(new_password)
    if not profile:
        profile = UserProfile(user_id=user.id, email=user.email or '')
        db.session.add(profile)
    profile.reset_expiry(_expiry_days(), now=utcnow())
    db.session.commit()
    current_app.logger.info(f"Password changed for user {user.id}")
    return profile
