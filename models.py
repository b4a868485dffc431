from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta

import pytz

db = SQLAlchemy()


def utcnow():
    """Naive UTC 'now', matching how timestamps are stored."""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def _iso_utc(value):
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    events = db.relationship('Event', backref='creator', lazy=True, cascade="all, delete-orphan")
    tags = db.relationship('Tag', backref='owner', lazy=True, cascade="all, delete-orphan")
    profile = db.relationship('UserProfile', backref='user', uselist=False, cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {'user_id': self.id, 'email': self.email}


class UserProfile(db.Model):
    """Credential state kept alongside the auth identity."""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False, default='')
    password_expires_at = db.Column(db.DateTime, nullable=False)
    password_change_required = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def reset_expiry(self, days, now=None):
        """Start a fresh validity window and clear the forced-change flag."""
        self.password_expires_at = (now or utcnow()) + timedelta(days=days)
        self.password_change_required = False

    def is_password_expired(self, now=None):
        return self.password_expires_at <= (now or utcnow())

    def needs_password_change(self, now=None):
        return bool(self.password_change_required) or self.is_password_expired(now)

    def to_dict(self, now=None):
        expired = self.is_password_expired(now)
        return {
            'id': self.id,
            'userId': self.user_id,
            'email': self.email,
            'passwordExpiresAt': _iso_utc(self.password_expires_at),
            'passwordChangeRequired': bool(self.password_change_required) or expired,
            'isPasswordExpired': expired,
        }


class Tag(db.Model):
    __table_args__ = (db.UniqueConstraint('user_id', 'name', name='uq_tag_user_name'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(80), nullable=False)
    color = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    event_links = db.relationship('EventTag', back_populates='tag', lazy=True, cascade="all, delete-orphan")

    def to_ref(self):
        return {'id': self.id, 'name': self.name, 'color': self.color}

    def to_dict(self):
        data = self.to_ref()
        data['userId'] = self.user_id
        return data


class EventTag(db.Model):
    """Ordered association between an event and a tag."""
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), primary_key=True)
    tag_id = db.Column(db.Integer, db.ForeignKey('tag.id'), primary_key=True)
    position = db.Column(db.Integer, default=0, nullable=False)

    event = db.relationship('Event', back_populates='tag_links')
    tag = db.relationship('Tag', back_populates='event_links')


class Event(db.Model):
    """
    Calendar event. start/end are stored as naive UTC. When rrule is set,
    start/end only anchor the first occurrence and the duration column that
    matches all_day carries the occurrence length.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    all_day = db.Column(db.Boolean, default=False, nullable=False)
    start = db.Column(db.DateTime, nullable=False)
    end = db.Column(db.DateTime, nullable=False)
    time_zone = db.Column(db.String(64), nullable=False, default='UTC')
    rrule = db.Column(db.Text, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)
    duration_days = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    tag_links = db.relationship(
        'EventTag',
        back_populates='event',
        lazy=True,
        cascade="all, delete-orphan",
        order_by="EventTag.position"
    )

    @property
    def tags(self):
        return [link.tag for link in self.tag_links if link.tag is not None]

    def _duration(self):
        if self.all_day:
            return {'days': self.duration_days} if self.duration_days else None
        return {'minutes': self.duration_minutes} if self.duration_minutes else None

    def to_display_dict(self):
        """Shape consumed by the calendar widget."""
        tags = self.tags
        data = {
            'id': self.id,
            'title': self.title,
            'allDay': bool(self.all_day),
            'extendedProps': {
                'description': self.description,
                'timezone': self.time_zone,
                'tags': [t.to_ref() for t in tags],
            },
        }
        if self.rrule:
            data['rrule'] = self.rrule
            duration = self._duration()
            if duration:
                data['duration'] = duration
        else:
            data['start'] = _iso_utc(self.start)
            data['end'] = _iso_utc(self.end)

        # First tag wins for display color
        if tags and tags[0].color:
            data['backgroundColor'] = tags[0].color
            data['borderColor'] = tags[0].color
        return data
