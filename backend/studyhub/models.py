"""SQLModel data models.

This module defines the application's three document tables. Accounts
are plain rows; groups and sessions embed their member, participant and
resource lists as JSON columns and reference accounts by id only.

Embedded entries are plain dicts:
- group resource: `{id, title, url, description, kind, creator_id,
  is_public, created_at}`
- session participant: `{user_id, joined_at}`

Timestamps are timezone-aware UTC datetimes; embedded timestamps are ISO
strings with an explicit offset. SQLite drops the offset on the way back,
so code that reads a stored timestamp goes through `as_utc`.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field

GROUP_SUBJECTS = ('Mathematics', 'Physics', 'Chemistry', 'Biology', 'Computer Science', 'English', 'History', 'Other')
CURRENT_YEARS = ('1st Year', '2nd Year', '3rd Year', '4th Year', 'Other')
RESOURCE_KINDS = ('resource', 'note')
SESSION_STATUSES = ('scheduled', 'ongoing', 'completed', 'cancelled')

DEFAULT_MAX_MEMBERS = 50


def new_id() -> str:
    """Return a fresh opaque document id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return `value` as an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Account(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique display handle
    - `email`: unique login, stored lowercased
    - `password_hash`: hashed password string (never store plaintext)
    """
    __tablename__ = "accounts"

    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    date_of_birth: Optional[str] = None
    college_name: Optional[str] = None
    current_year: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class StudyGroup(SQLModel, table=True):
    """A study group; `members` always contains `creator_id`."""
    __tablename__ = "groups"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str
    subject: str = Field(default='Other', index=True)
    creator_id: str = Field(index=True)
    members: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    max_members: int = DEFAULT_MAX_MEMBERS
    is_public: bool = True
    resources: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class StudySession(SQLModel, table=True):
    """A scheduled study session.

    The organizer is referenced by `organizer_id` and never appears in
    `participants`.
    """
    __tablename__ = "sessions"

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    description: Optional[str] = None
    subject: str
    date: datetime = Field(index=True, sa_type=DateTime(timezone=True))
    start_time: str
    end_time: str
    location: str
    max_participants: int
    organizer_id: str = Field(index=True)
    participants: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    status: str = Field(default='scheduled', index=True)
    is_public: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
