"""
SQLAlchemy ORM models for Thailand Tracker.

Three models:
  AppUser       — an account; rows are created by /api/auth/signup or, for
                  tokens issued by the managed auth provider, on first use
  Place         — a logged point of interest tied to a province by name
  UserProvince  — per-user visited flag for one province (upserted by id)

Default database: SQLite (thailand_tracker.db).
Production: set DATABASE_URL to a PostgreSQL connection string.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base


def _utcnow():
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _uuid():
    return str(uuid.uuid4())


# db is kept as a module-level name so database.py, manage.py and the
# Alembic env can reach db.metadata.
db = declarative_base()


# ---------------------------------------------------------------------------
# AppUser
# ---------------------------------------------------------------------------

class AppUser(db):
    __tablename__ = 'app_users'

    id            = Column(String(36), primary_key=True, default=_uuid)
    email         = Column(String(255), unique=True, nullable=False, index=True)
    full_name     = Column(String(255), nullable=True)
    avatar_url    = Column(String(1000), nullable=True)
    password_hash = Column(String(255), nullable=True)   # NULL for provider-issued accounts
    is_active     = Column(Boolean, nullable=False, default=True)
    created_at    = Column(DateTime, nullable=False, default=_utcnow)
    last_login_at = Column(DateTime, nullable=True)

    def to_dict(self):
        return {
            'id':     self.id,
            'email':  self.email,
            'name':   self.full_name or self.email,
            'avatar': self.avatar_url or None,
        }

    def __repr__(self):
        return f'<AppUser {self.email}>'


# ---------------------------------------------------------------------------
# Place
# ---------------------------------------------------------------------------

class Place(db):
    __tablename__ = 'places'

    id          = Column(String(36), primary_key=True, default=_uuid)
    user_id     = Column(String(36), ForeignKey('app_users.id'), nullable=False, index=True)
    name        = Column(String(255), nullable=False)
    location    = Column(String(255), nullable=False)    # province name as the user typed it
    date_added  = Column(String(50),  nullable=False)    # display string, e.g. '12 Oct 2023'
    image       = Column(Text,        nullable=False, default='')
    is_marked   = Column(Boolean,     nullable=False, default=True)
    category    = Column(String(100), nullable=True)
    description = Column(Text,        nullable=True)
    created_at  = Column(DateTime,    nullable=False, default=_utcnow)

    def to_dict(self):
        # camelCase keys: this is the shape the map client consumes
        return {
            'id':          self.id,
            'name':        self.name,
            'location':    self.location,
            'dateAdded':   self.date_added,
            'image':       self.image or '',
            'isMarked':    self.is_marked,
            'category':    self.category,
            'description': self.description,
        }

    def __repr__(self):
        return f'<Place {self.name!r} in {self.location!r}>'


# ---------------------------------------------------------------------------
# UserProvince
# ---------------------------------------------------------------------------

class UserProvince(db):
    __tablename__ = 'user_provinces'
    __table_args__ = (
        UniqueConstraint('user_id', 'province_id', name='uq_user_province'),
    )

    id            = Column(String(36), primary_key=True, default=_uuid)
    user_id       = Column(String(36), ForeignKey('app_users.id'), nullable=False, index=True)
    province_id   = Column(String(100), nullable=False)   # slug, e.g. 'chiang-mai'
    province_name = Column(String(255), nullable=False)
    visited       = Column(Boolean, nullable=False, default=False)
    updated_at    = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            'id':      self.province_id,
            'name':    self.province_name,
            'visited': self.visited,
        }

    def __repr__(self):
        return f'<UserProvince {self.province_id} visited={self.visited}>'
