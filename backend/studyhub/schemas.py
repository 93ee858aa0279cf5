"""Pydantic request schemas used by the API.

The field rules (lengths, ranges, enumerations, email syntax, date and
time formats) live on these models. FastAPI applies them to request
bodies, and `studyhub.validation` runs the same models over plain dicts
so services reject bad input before touching the database.

Update payloads (`*UpdateIn`) make every field optional; the create
payloads subclass them and make the mandatory fields required.
"""

import re
from datetime import date as calendar_date, datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    EmailStr,
    Field,
    StrictBool,
    StrictInt,
    StringConstraints,
    ValidationInfo,
    field_validator,
)

from .models import CURRENT_YEARS, GROUP_SUBJECTS, RESOURCE_KINDS, SESSION_STATUSES, utcnow

TIME_RE = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')


def _text(min_length: int = 0, max_length: Optional[int] = None):
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=min_length, max_length=max_length)]


def parse_time(value: str) -> int:
    """Convert an `H:MM`/`HH:MM` string into minutes past midnight."""
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def normalize_time(value: str) -> str:
    """Zero-pad an `H:MM` time to `HH:MM` so stored times sort as text."""
    minutes = parse_time(value)
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def parse_session_date(value) -> Optional[datetime]:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Values without an offset are taken to be UTC. Returns `None` when
    `value` cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class RegisterIn(BaseModel):
    """Payload for account registration."""
    username: _text(3, 30)
    email: Annotated[EmailStr, BeforeValidator(_strip)]
    password: Annotated[str, StringConstraints(min_length=6)]
    date_of_birth: Optional[str] = None
    college_name: Optional[_text(3, 100)] = None
    current_year: Optional[Literal[CURRENT_YEARS]] = None

    @field_validator('date_of_birth')
    @classmethod
    def _iso_date(cls, value):
        if value is None:
            return value
        try:
            calendar_date.fromisoformat(value)
        except ValueError:
            raise ValueError('Please provide a valid date')
        return value


class LoginIn(BaseModel):
    email: Annotated[EmailStr, BeforeValidator(_strip)]
    password: Annotated[str, StringConstraints(min_length=1)]


class GroupIn(BaseModel):
    """Payload for creating a study group."""
    name: _text(3, 100)
    description: _text(10, 500)
    subject: Literal[GROUP_SUBJECTS]
    max_members: Optional[Annotated[StrictInt, Field(ge=2, le=500)]] = None
    is_public: Optional[StrictBool] = None


class GroupMembershipIn(BaseModel):
    """Body of join/leave requests."""
    group_id: str


class ResourceUpdateIn(BaseModel):
    """Payload for updating a resource/note.

    Unknown keys are dropped, which is how updates ignore fields that
    are not allowed to change.
    """
    title: Optional[_text(1, 200)] = None
    url: Optional[str] = None
    description: Optional[_text(0, 1000)] = None
    kind: Optional[Literal[RESOURCE_KINDS]] = None
    is_public: Optional[StrictBool] = None


class ResourceIn(ResourceUpdateIn):
    """Payload for adding a resource/note."""
    title: _text(1, 200)


class SessionUpdateIn(BaseModel):
    """Payload for updating a study session; omitted fields keep their value.

    The "date must be in the future" rule compares against
    `context['now']` when the caller passes one, else the current time.
    """
    title: Optional[_text(1, 100)] = None
    description: Optional[_text(0, 500)] = None
    subject: Optional[_text(1, 50)] = None
    date: Optional[Union[datetime, str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[_text(1, 100)] = None
    max_participants: Optional[Annotated[StrictInt, Field(ge=1, le=50)]] = None
    is_public: Optional[StrictBool] = None
    status: Optional[Literal[SESSION_STATUSES]] = None

    @field_validator('date')
    @classmethod
    def _future_date(cls, value, info: ValidationInfo):
        if value is None:
            return value
        parsed = parse_session_date(value)
        if parsed is None:
            raise ValueError('Please provide a valid date')
        now = (info.context or {}).get('now') or utcnow()
        if parsed <= parse_session_date(now):
            raise ValueError('Session date must be in the future')
        return value

    @field_validator('start_time', 'end_time')
    @classmethod
    def _clock_time(cls, value, info: ValidationInfo):
        if value is None:
            return value
        if not TIME_RE.match(value):
            label = 'start' if info.field_name == 'start_time' else 'end'
            raise ValueError(f'Please provide a valid {label} time (HH:MM)')
        return normalize_time(value)


class SessionIn(SessionUpdateIn):
    """Payload for creating a study session."""
    title: _text(1, 100)
    subject: _text(1, 50)
    date: Union[datetime, str]
    start_time: str
    end_time: str
    location: _text(1, 100)
    max_participants: Annotated[StrictInt, Field(ge=1, le=50)]
