"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the StudyHub backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and wrap the hydrated result in the
`{"success": true, "data": ...}` envelope.

Endpoints implemented:
- POST /api/auth/register, POST /api/auth/login, GET /api/auth/verify
- GET /api/groups/list, POST /api/groups/create, POST /api/groups/join,
  POST /api/groups/leave, GET /api/groups/my-groups, GET /api/groups/{id}
- GET/POST /api/groups/{id}/resources,
  PUT/DELETE /api/groups/{id}/resources/{resource_id}
- POST/GET /api/sessions, GET /api/sessions/my,
  POST /api/sessions/{id}/join, POST /api/sessions/{id}/leave,
  PUT/DELETE /api/sessions/{id}
- GET /health
"""

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import os
import time
import uuid
from .database import create_db_and_tables, get_session
from . import models, services, views
from .auth import get_current_user, get_optional_user
from .config import settings
from .errors import RateLimited, StudyHubError
from .schemas import (
    GroupIn, GroupMembershipIn, LoginIn, RegisterIn, ResourceIn, ResourceUpdateIn, SessionIn, SessionUpdateIn,
)
from .utils.rate_limit import InMemoryRateLimiter, RateLimit
from .validation import field_errors

app = FastAPI(title="StudyHub API")
logger = logging.getLogger("studyhub.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

_auth_rate_limiter = InMemoryRateLimiter()
auth_rate_limit = RateLimit(
    _auth_rate_limiter,
    max_requests=settings.AUTH_RATE_LIMIT_PER_MIN,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)

# Wide-open CORS keeps the local single-page frontend working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(StudyHubError)
async def studyhub_error_handler(request: Request, exc: StudyHubError):
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimited) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render pydantic shape errors like the field validators do."""
    details = field_errors(exc.errors())
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {"message": "Validation failed", "code": "VALIDATION_ERROR",
                      "kind": "ValidationFailed", "details": details},
        },
    )


def _ok(data: Optional[dict] = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


# ---------- Auth ----------

@app.post('/api/auth/register', status_code=201, dependencies=[Depends(auth_rate_limit)])
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new account.

    Returns the public profile; the password hash never leaves the service.
    """
    account = services.AuthService(db).register(payload.model_dump())
    return _ok({'user': views.account_profile(account)}, 'User registered successfully')


@app.post('/api/auth/login', dependencies=[Depends(auth_rate_limit)])
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate by email/password and return a signed JWT.

    The token carries `user_id` and `email` and expires after
    `JWT_EXPIRE_HOURS`.
    """
    account, token = services.AuthService(db).authenticate(payload.email, payload.password)
    return _ok({'token': token, 'user': views.account_summary(account, account.id)}, 'Login successful')


@app.get('/api/auth/verify')
def verify(user: models.Account = Depends(get_current_user)):
    return _ok({'user': views.account_summary(user, user.id)})


# ---------- Groups ----------

@app.get('/api/groups/list')
def list_groups(
    subject: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session),
):
    """List public study groups, newest first."""
    groups, pagination = services.GroupService(db).list_public(subject=subject, page=page, limit=limit)
    return _ok({'groups': views.render_groups(db, groups), 'pagination': pagination})


@app.post('/api/groups/create', status_code=201)
def create_group(payload: GroupIn, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    """Create a group owned by the caller, who becomes its first member."""
    group = services.GroupService(db).create(user.id, payload.model_dump())
    return _ok({'group': views.render_group(db, group, user.id)}, 'Study group created successfully')


@app.post('/api/groups/join')
def join_group(payload: GroupMembershipIn, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    group = services.GroupService(db).join(payload.group_id, user.id)
    return _ok({'group': views.render_group(db, group, user.id)}, 'Successfully joined the study group')


@app.post('/api/groups/leave')
def leave_group(payload: GroupMembershipIn, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    group = services.GroupService(db).leave(payload.group_id, user.id)
    return _ok({'group': views.render_group(db, group, user.id)}, 'Successfully left the study group')


@app.get('/api/groups/my-groups')
def my_groups(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.Account = Depends(get_current_user),
):
    """List the groups the caller is a member of."""
    groups, pagination = services.GroupService(db).list_for_member(user.id, page=page, limit=limit)
    return _ok({'groups': views.render_groups(db, groups, user.id), 'pagination': pagination})


@app.get('/api/groups/{group_id}')
def get_group(group_id: str, db: Session = Depends(get_session),
              user: Optional[models.Account] = Depends(get_optional_user)):
    """Fetch one group; a private group's resources are left out for non-members."""
    group = services.GroupService(db).get(group_id)
    return _ok({'group': views.render_group(db, group, user.id if user else None)})


# ---------- Resources ----------

@app.get('/api/groups/{group_id}/resources')
def list_resources(group_id: str, db: Session = Depends(get_session),
                   user: Optional[models.Account] = Depends(get_optional_user)):
    """List a group's resources.

    Anyone may read a public group's resources; a private group's
    resources are visible to its members only.
    """
    items = services.ResourceService(db).list_for_group(group_id, user.id if user else None)
    return _ok({'resources': views.render_resources(db, items)})


@app.post('/api/groups/{group_id}/resources', status_code=201)
def add_resource(group_id: str, payload: ResourceIn, db: Session = Depends(get_session),
                 user: models.Account = Depends(get_current_user)):
    resource = services.ResourceService(db).add(group_id, user.id, payload.model_dump())
    return _ok({'resource': views.render_resources(db, [resource])[0]}, 'Resource added')


@app.put('/api/groups/{group_id}/resources/{resource_id}')
def update_resource(group_id: str, resource_id: str, payload: ResourceUpdateIn, db: Session = Depends(get_session),
                    user: models.Account = Depends(get_current_user)):
    """Update a resource; only its creator or the group creator may."""
    resource = services.ResourceService(db).update(group_id, resource_id, user.id, payload.model_dump(exclude_unset=True))
    return _ok({'resource': views.render_resources(db, [resource])[0]}, 'Resource updated')


@app.delete('/api/groups/{group_id}/resources/{resource_id}')
def delete_resource(group_id: str, resource_id: str, db: Session = Depends(get_session),
                    user: models.Account = Depends(get_current_user)):
    services.ResourceService(db).delete(group_id, resource_id, user.id)
    return _ok(message='Resource deleted')


# ---------- Sessions ----------

@app.post('/api/sessions', status_code=201)
def create_session(payload: SessionIn, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    """Schedule a session organized by the caller."""
    study_session = services.SessionService(db).create(user.id, payload.model_dump())
    return _ok({'session': views.render_session(db, study_session)}, 'Session created successfully')


@app.get('/api/sessions')
def list_sessions(
    status: str = 'scheduled',
    subject: Optional[str] = None,
    date: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.Account = Depends(get_current_user),
):
    """List public sessions ordered by date and start time.

    `subject` matches case-insensitively anywhere in the subject and
    `date` (YYYY-MM-DD) restricts results to that day.
    """
    sessions, pagination = services.SessionService(db).list_public(
        status=status, subject=subject, date=date, page=page, limit=limit)
    return _ok({'sessions': views.render_sessions(db, sessions), 'pagination': pagination})


@app.get('/api/sessions/my')
def my_sessions(db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    organized, joined = services.SessionService(db).list_mine(user.id)
    return _ok({'organized': views.render_sessions(db, organized), 'joined': views.render_sessions(db, joined)})


@app.post('/api/sessions/{session_id}/join')
def join_session(session_id: str, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    study_session = services.SessionService(db).join(session_id, user.id)
    return _ok({'session': views.render_session(db, study_session)}, 'Successfully joined the session')


@app.post('/api/sessions/{session_id}/leave')
def leave_session(session_id: str, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    study_session = services.SessionService(db).leave(session_id, user.id)
    return _ok({'session': views.render_session(db, study_session)}, 'Successfully left the session')


@app.put('/api/sessions/{session_id}')
def update_session(session_id: str, payload: SessionUpdateIn, db: Session = Depends(get_session),
                   user: models.Account = Depends(get_current_user)):
    """Update a session; organizer only. Omitted fields keep their value."""
    study_session = services.SessionService(db).update(session_id, user.id, payload.model_dump(exclude_unset=True))
    return _ok({'session': views.render_session(db, study_session)}, 'Session updated successfully')


@app.delete('/api/sessions/{session_id}')
def delete_session(session_id: str, db: Session = Depends(get_session), user: models.Account = Depends(get_current_user)):
    services.SessionService(db).delete(session_id, user.id)
    return _ok(message='Session deleted successfully')


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    run()
