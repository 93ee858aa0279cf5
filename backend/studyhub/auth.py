"""Authentication helpers and FastAPI security dependencies.

This module provides the bearer-token dependencies used by routes:
`get_current_user` requires a valid token and returns the `Account`,
`get_optional_user` returns `None` when no token is sent. Failures are
raised as `Unauthenticated` so the API renders them like every other
domain error.
"""

from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models
from .database import get_session
from .errors import Unauthenticated
from .services import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.Account:
    """FastAPI dependency that returns the authenticated account.

    Raises `Unauthenticated` (`NO_TOKEN`) when the Authorization header
    is missing and (`INVALID_TOKEN`) when the token does not verify.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated('Access token required', code='NO_TOKEN')
    return AuthService(db).verify(credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> Optional[models.Account]:
    """Like `get_current_user` but anonymous requests yield `None`.

    A token that is present but invalid is still rejected.
    """
    if credentials is None or not credentials.credentials:
        return None
    return AuthService(db).verify(credentials.credentials)
