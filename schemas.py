"""
schemas.py — Pydantic v2 request models for Thailand Tracker.

The map client speaks camelCase (dateAdded, isMarked, provinceName), so
fields carry aliases; populate_by_name lets tests and the CLI use the
snake_case names too.

Validation errors return HTTP 422; a handler in app.py reshapes them to
{'error': '...'} like every other error response.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_IMAGE_LEN = 2_000_000   # room for a small inline data: URL


# ── Shared validator helpers ──────────────────────────────────────────────────

def _collapse(v: str | None) -> str | None:
    """Collapse all whitespace to a single space and strip the ends.
    Returns None if the result is empty."""
    if v is None:
        return None
    s = re.sub(r'\s+', ' ', str(v)).strip()
    return s or None


def _strip_only(v: str | None) -> str | None:
    """Strip leading/trailing whitespace only; keep internal newlines.
    Returns None if the result is empty."""
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Auth ──────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email:    str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=200)

    @field_validator('email', mode='before')
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return str(v).strip().lower()


class SignupRequest(_CamelModel):
    email:      str        = Field(..., min_length=3, max_length=255)
    password:   str        = Field(..., min_length=6, max_length=200)
    full_name:  str | None = Field(default=None, alias='fullName', max_length=255)
    avatar_url: str | None = Field(default=None, alias='avatarUrl', max_length=1000)

    @field_validator('email', mode='before')
    @classmethod
    def normalise_email(cls, v: str) -> str:
        email = str(v).strip().lower()
        if '@' not in email:
            raise ValueError('A valid email address is required')
        return email

    @field_validator('full_name', 'avatar_url', mode='before')
    @classmethod
    def collapse_single_line(cls, v: str | None) -> str | None:
        return _collapse(v)


# ── Places ────────────────────────────────────────────────────────────────────

class PlaceCreate(_CamelModel):
    name:        str        = Field(..., min_length=1, max_length=255)
    location:    str        = Field(..., min_length=1, max_length=255)
    date_added:  str | None = Field(default=None, alias='dateAdded', max_length=50)
    image:       str | None = Field(default=None, max_length=MAX_IMAGE_LEN)
    is_marked:   bool       = Field(default=True, alias='isMarked')
    category:    str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator('name', 'location', 'date_added', 'category', mode='before')
    @classmethod
    def collapse_single_line(cls, v: str | None) -> str | None:
        return _collapse(v)

    @field_validator('image', 'description', mode='before')
    @classmethod
    def strip_multiline(cls, v: str | None) -> str | None:
        return _strip_only(v)

    @field_validator('is_marked', mode='before')
    @classmethod
    def default_marked(cls, v):
        return True if v is None else v


class PlaceUpdate(_CamelModel):
    """All fields optional — only keys present in the body are applied."""
    name:        str | None  = Field(default=None, max_length=255)
    location:    str | None  = Field(default=None, max_length=255)
    date_added:  str | None  = Field(default=None, alias='dateAdded', max_length=50)
    image:       str | None  = Field(default=None, max_length=MAX_IMAGE_LEN)
    is_marked:   bool | None = Field(default=None, alias='isMarked')
    category:    str | None  = Field(default=None, max_length=100)
    description: str | None  = Field(default=None, max_length=2000)

    @field_validator('name', 'location', 'date_added', 'category', mode='before')
    @classmethod
    def collapse_single_line(cls, v: str | None) -> str | None:
        return _collapse(v)

    @field_validator('image', 'description', mode='before')
    @classmethod
    def strip_multiline(cls, v: str | None) -> str | None:
        return _strip_only(v)


# ── Provinces ─────────────────────────────────────────────────────────────────

class ProvinceUpdate(_CamelModel):
    province_name: str | None = Field(default=None, alias='provinceName', max_length=255)
    visited:       bool

    @field_validator('province_name', mode='before')
    @classmethod
    def collapse_single_line(cls, v: str | None) -> str | None:
        return _collapse(v)


# ── AI lookup ─────────────────────────────────────────────────────────────────

class LookupRequest(BaseModel):
    query:    str                          = Field(..., min_length=1, max_length=200)
    language: Literal['EN', 'TH', 'CN']    = 'EN'

    @field_validator('query', mode='before')
    @classmethod
    def collapse_query(cls, v: str | None) -> str | None:
        return _collapse(v)
