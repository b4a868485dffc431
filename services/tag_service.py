from models import db, Tag
from services.errors import NotFoundError, ValidationError
from services.validation_service import parse_color, require_text

# Seeded only for a user with no tags yet, so renames and edits stick.
DEFAULT_TAGS = [
    ('Work', '#3b82f6'),
    ('Personal', '#10b981'),
    ('Family', '#f59e0b'),
    ('Health', '#ef4444'),
    ('Education', '#8b5cf6'),
    ('Travel', '#06b6d4'),
    ('Social', '#ec4899'),
    ('Hobby', '#84cc16'),
]


def ensure_default_tags(user_id):
    """Seed the default tags for a user who has none yet (no commit). Returns count added."""
    if Tag.query.filter_by(user_id=user_id).first() is not None:
        return 0
    for name, color in DEFAULT_TAGS:
        db.session.add(Tag(user_id=user_id, name=name, color=color))
    db.session.flush()
    return len(DEFAULT_TAGS)


def list_tags(user_id):
    return Tag.query.filter_by(user_id=user_id).order_by(Tag.name.asc()).all()


def resolve_user_tags(user_id, tag_ids):
    """Load tags by id, in the given order, all owned by user_id."""
    if not tag_ids:
        return []
    found = {t.id: t for t in Tag.query.filter(Tag.user_id == user_id, Tag.id.in_(tag_ids)).all()}
    missing = [tid for tid in tag_ids if tid not in found]
    if missing:
        raise ValidationError(f"Unknown tag ids: {', '.join(str(m) for m in missing)}")
    return [found[tid] for tid in tag_ids]


def _name_taken(user_id, name, exclude_id=None):
    query = Tag.query.filter(Tag.user_id == user_id, db.func.lower(Tag.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Tag.id != exclude_id)
    return query.first() is not None


def create_tag(user_id, data):
    name = require_text(data, 'name')
    color = parse_color(data.get('color'))
    if _name_taken(user_id, name):
        raise ValidationError('Tag name already exists')
    tag = Tag(user_id=user_id, name=name, color=color)
    db.session.add(tag)
    db.session.commit()
    return tag


def update_tag(user_id, tag_id, data):
    tag = Tag.query.filter_by(id=tag_id, user_id=user_id).first()
    if not tag:
        raise NotFoundError('Tag not found')

    if data.get('name') is not None:
        name = require_text(data, 'name')
        if _name_taken(user_id, name, exclude_id=tag.id):
            raise ValidationError('Tag name already exists')
        tag.name = name
    if data.get('color') is not None:
        tag.color = parse_color(data.get('color'))

    db.session.commit()
    return tag
