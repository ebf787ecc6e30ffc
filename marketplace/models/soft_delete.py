"""
Soft delete support.

Adds a ``deleted_at`` tombstone column and query helpers. Soft-deleted rows
stay in the table but are invisible to ``query_active()`` and to every
service lookup.

Usage:
    class Specialist(SoftDeleteMixin, TimestampMixin, db.Model):
        ...

    obj.soft_delete()
    db.session.commit()

    Specialist.query_active().all()
"""

import uuid
from datetime import datetime, timezone

from marketplace.models import db


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


class TimestampMixin:
    """UUID primary key plus created/updated timestamps."""

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    deleted_at = db.Column(db.DateTime, nullable=True, default=None, index=True)

    def soft_delete(self):
        """Mark this record as deleted."""
        self.deleted_at = utcnow()

    def restore(self):
        """Restore a soft-deleted record."""
        self.deleted_at = None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))
