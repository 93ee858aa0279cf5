"""Field validation for request payloads.

Each `validate_*` function is pure: it runs the matching pydantic schema
over a plain dict and returns a list of `{"field", "message"}` entries,
one per offending field (empty when the payload is acceptable). Services
call `ensure_valid` before touching the database.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ValidationError

from .errors import ValidationFailed
from .schemas import (
    GroupIn,
    LoginIn,
    RegisterIn,
    ResourceIn,
    ResourceUpdateIn,
    SessionIn,
    SessionUpdateIn,
    normalize_time,
    parse_session_date,
    parse_time,
)

__all__ = [
    'FieldErrors', 'ensure_valid', 'field_errors', 'normalize_email', 'normalize_time', 'parse_session_date',
    'parse_time', 'validate_group', 'validate_login', 'validate_registration', 'validate_resource',
    'validate_session',
]

FieldErrors = List[Dict[str, str]]

_VALUE_ERROR_PREFIX = 'Value error, '
_REQUEST_PARTS = ('body', 'query', 'path')


def ensure_valid(errors: FieldErrors) -> None:
    """Raise `ValidationFailed` carrying `errors` if there are any."""
    if errors:
        raise ValidationFailed(errors)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def field_errors(errors: Iterable[dict]) -> FieldErrors:
    """Flatten pydantic error dicts into `{field, message}` entries.

    Only the first error of each top-level field is kept. Messages raised
    by our own validators lose pydantic's "Value error, " prefix.
    """
    details: FieldErrors = []
    seen = set()
    for err in errors:
        loc = [str(p) for p in err.get('loc', ()) if p not in _REQUEST_PARTS]
        field = loc[0] if loc else 'body'
        if field in seen:
            continue
        seen.add(field)
        message = err.get('msg') or 'Invalid value'
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        details.append({'field': field, 'message': message})
    return details


def _check(schema: type[BaseModel], data: dict, **context) -> FieldErrors:
    try:
        schema.model_validate(data, context=context)
    except ValidationError as exc:
        return field_errors(exc.errors())
    return []


def validate_registration(data: dict) -> FieldErrors:
    """Validate a registration payload.

    `username`, `email` and `password` are required; the profile fields
    are checked only when provided.
    """
    return _check(RegisterIn, data)


def validate_login(data: dict) -> FieldErrors:
    return _check(LoginIn, data)


def validate_group(data: dict) -> FieldErrors:
    return _check(GroupIn, data)


def validate_session(data: dict, partial: bool = False, now: Optional[datetime] = None) -> FieldErrors:
    """Validate a session payload.

    With `partial=True` only the fields present in `data` are checked,
    which is what updates need. `now` defaults to the current UTC time
    and is the reference for the "date must be in the future" rule.
    The start/end ordering is a domain rule and is checked by the
    service, not here.
    """
    return _check(SessionUpdateIn if partial else SessionIn, data, now=now)


def validate_resource(data: dict, partial: bool = False) -> FieldErrors:
    """Validate a resource/note payload (`partial=True` for updates)."""
    return _check(ResourceUpdateIn if partial else ResourceIn, data)
