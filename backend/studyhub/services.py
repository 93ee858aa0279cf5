"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
validation and the membership/resource rules. Services are intentionally
thin: they validate input, load the document, apply the domain rule and
persist the whole document via repositories.

Every service raises `studyhub.errors` exceptions for expected failures;
nothing is retried.
"""

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import membership, models, repositories, resources
from .config import settings
from .errors import Conflict, Forbidden, InvalidState, NotFound, Unauthenticated, ValidationFailed
from .validation import (
    ensure_valid,
    normalize_email,
    normalize_time,
    parse_session_date,
    parse_time,
    validate_group,
    validate_login,
    validate_registration,
    validate_resource,
    validate_session,
)

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_UPDATABLE_FIELDS = ('title', 'description', 'subject', 'date', 'start_time', 'end_time',
                            'location', 'max_participants', 'is_public', 'status')

logger = logging.getLogger("studyhub.services")


def _log_event(event: str, **fields) -> None:
    logger.info("%s %s", event, json.dumps(fields, ensure_ascii=True, default=str))


def paginate(total: int, page: int, limit: int) -> dict:
    return {'total': total, 'page': page, 'limit': limit, 'pages': math.ceil(total / limit) if limit else 0}


class AuthService:
    """Authentication related operations (register, authenticate, verify)."""
    def __init__(self, session: Session):
        self.session = session
        self.account_repo = repositories.AccountRepository(session)

    def register(self, data: dict) -> models.Account:
        """Create a new account with a hashed password.

        The email is checked before the username so a client re-using
        both gets the email error. Returns the persisted `Account`.
        """
        ensure_valid(validate_registration(data))
        email = normalize_email(data['email'])
        username = data['username'].strip()
        if self.account_repo.get_by_email(email):
            raise Conflict('Email already registered', code='EMAIL_EXISTS')
        if self.account_repo.get_by_username(username):
            raise Conflict('Username already taken', code='USERNAME_EXISTS')
        account = models.Account(
            username=username,
            email=email,
            password_hash=PWD_CTX.hash(data['password']),
            date_of_birth=data.get('date_of_birth'),
            college_name=data['college_name'].strip() if data.get('college_name') else None,
            current_year=data.get('current_year'),
        )
        try:
            account = self.account_repo.create(account)
        except IntegrityError:
            # a concurrent registration won the unique index
            self.session.rollback()
            raise Conflict('Email or username already registered', code='ACCOUNT_EXISTS')
        _log_event("account_registered", account_id=account.id, username=account.username)
        return account

    def authenticate(self, email: str, password: str) -> Tuple[models.Account, str]:
        """Verify credentials and return the account with a signed JWT.

        Raises `Unauthenticated` for an unknown email or a wrong password
        without telling the two apart.
        """
        ensure_valid(validate_login({'email': email, 'password': password}))
        account = self.account_repo.get_by_email(normalize_email(email))
        if not account or not PWD_CTX.verify(password, account.password_hash):
            raise Unauthenticated('Invalid credentials', code='INVALID_CREDENTIALS')
        return account, self.issue_token(account)

    def issue_token(self, account: models.Account) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": account.id, "email": account.email, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> str:
        """Return the account id carried by `token`."""
        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated('Invalid or expired token', code='INVALID_TOKEN')
        except jwt.InvalidTokenError:
            raise Unauthenticated('Invalid or expired token', code='INVALID_TOKEN')
        account_id = payload.get('user_id')
        if not account_id:
            raise Unauthenticated('Invalid token payload', code='INVALID_TOKEN')
        return account_id

    def verify(self, token: str) -> models.Account:
        """Decode `token` and load the account it belongs to."""
        account = self.account_repo.get(self.decode_token(token))
        if not account:
            raise Unauthenticated('User not found', code='USER_NOT_FOUND')
        return account


class GroupService:
    """Create study groups and manage their membership."""
    def __init__(self, session: Session):
        self.session = session
        self.group_repo = repositories.GroupRepository(session)
        self.account_repo = repositories.AccountRepository(session)

    def get(self, group_id: str) -> models.StudyGroup:
        group = self.group_repo.get(group_id)
        if not group:
            raise NotFound('Study group not found', code='GROUP_NOT_FOUND')
        return group

    def create(self, creator_id: str, data: dict) -> models.StudyGroup:
        """Create a group; the creator becomes its first member."""
        ensure_valid(validate_group(data))
        if not self.account_repo.get(creator_id):
            raise NotFound('User not found', code='USER_NOT_FOUND')
        group = models.StudyGroup(
            name=data['name'].strip(),
            description=data['description'].strip(),
            subject=data['subject'],
            creator_id=creator_id,
            members=[creator_id],
            max_members=data.get('max_members') or models.DEFAULT_MAX_MEMBERS,
            is_public=True if data.get('is_public') is None else data['is_public'],
        )
        group = self.group_repo.save(group)
        _log_event("group_created", group_id=group.id, creator_id=creator_id)
        return group

    def join(self, group_id: str, account_id: str) -> models.StudyGroup:
        group = self.get(group_id)
        membership.add_member(group, account_id)
        group = self.group_repo.save(group)
        _log_event("group_joined", group_id=group.id, account_id=account_id, members=len(group.members))
        return group

    def leave(self, group_id: str, account_id: str) -> models.StudyGroup:
        group = self.get(group_id)
        membership.remove_member(group, account_id)
        group = self.group_repo.save(group)
        _log_event("group_left", group_id=group.id, account_id=account_id, members=len(group.members))
        return group

    def list_public(self, subject: Optional[str] = None, page: int = 1, limit: int = 10):
        groups, total = self.group_repo.list_public(subject=subject, offset=(page - 1) * limit, limit=limit)
        return groups, paginate(total, page, limit)

    def list_for_member(self, account_id: str, page: int = 1, limit: int = 10):
        # Paging is applied after a full scan of the groups table; see the repository.
        groups, total = self.group_repo.list_for_member(account_id, offset=(page - 1) * limit, limit=limit)
        return groups, paginate(total, page, limit)


class ResourceService:
    """Resources and notes shared inside a study group."""
    def __init__(self, session: Session):
        self.session = session
        self.group_repo = repositories.GroupRepository(session)
        self.groups = GroupService(session)

    def list_for_group(self, group_id: str, requester_id: Optional[str] = None) -> List[dict]:
        return resources.list_resources(self.groups.get(group_id), requester_id)

    def add(self, group_id: str, requester_id: str, data: dict) -> dict:
        """Append a resource created by `requester_id` (members only)."""
        ensure_valid(validate_resource(data))
        group = self.groups.get(group_id)
        if not membership.is_member(group, requester_id):
            raise Forbidden('Only group members can add resources', code='NOT_A_MEMBER')
        resource = resources.append_resource(group, requester_id, data)
        self.group_repo.save(group)
        _log_event("resource_added", group_id=group_id, resource_id=resource['id'], account_id=requester_id)
        return resource

    def update(self, group_id: str, resource_id: str, requester_id: str, data: dict) -> dict:
        changes = {k: v for k, v in data.items() if k in resources.UPDATABLE_FIELDS}
        ensure_valid(validate_resource(changes, partial=True))
        group = self.groups.get(group_id)
        resource = resources.update_resource(group, resource_id, requester_id, changes)
        self.group_repo.save(group)
        _log_event("resource_updated", group_id=group_id, resource_id=resource_id, account_id=requester_id)
        return resource

    def delete(self, group_id: str, resource_id: str, requester_id: str) -> dict:
        group = self.groups.get(group_id)
        removed = resources.remove_resource(group, resource_id, requester_id)
        self.group_repo.save(group)
        _log_event("resource_deleted", group_id=group_id, resource_id=resource_id, account_id=requester_id)
        return removed


def _check_time_range(start_time: str, end_time: str) -> None:
    if parse_time(end_time) <= parse_time(start_time):
        raise InvalidState('End time must be after start time', code='INVALID_TIME_RANGE')


class SessionService:
    """Schedule study sessions and manage their participants."""
    def __init__(self, session: Session):
        self.session = session
        self.session_repo = repositories.SessionRepository(session)

    def get(self, session_id: str) -> models.StudySession:
        study_session = self.session_repo.get(session_id)
        if not study_session:
            raise NotFound('Session not found', code='SESSION_NOT_FOUND')
        return study_session

    def create(self, organizer_id: str, data: dict) -> models.StudySession:
        """Validate and persist a new session organized by `organizer_id`.

        Field errors are reported before the start/end ordering rule, and
        nothing is written when either fails.
        """
        ensure_valid(validate_session(data))
        _check_time_range(data['start_time'], data['end_time'])
        study_session = models.StudySession(
            title=data['title'].strip(),
            description=data['description'].strip() if data.get('description') else None,
            subject=data['subject'].strip(),
            date=parse_session_date(data['date']),
            start_time=normalize_time(data['start_time']),
            end_time=normalize_time(data['end_time']),
            location=data['location'].strip(),
            max_participants=data['max_participants'],
            organizer_id=organizer_id,
            status=data.get('status') or 'scheduled',
            is_public=True if data.get('is_public') is None else data['is_public'],
        )
        study_session = self.session_repo.save(study_session)
        _log_event("session_created", session_id=study_session.id, organizer_id=organizer_id)
        return study_session

    def list_public(self, status: str = 'scheduled', subject: Optional[str] = None,
                    date: Optional[str] = None, page: int = 1, limit: int = 10):
        day = None
        if date:
            day = parse_session_date(date)
            if day is None:
                raise ValidationFailed([{'field': 'date', 'message': 'Please provide a valid date'}])
        sessions, total = self.session_repo.list_public(
            status=status, subject=subject, day=day, offset=(page - 1) * limit, limit=limit)
        return sessions, paginate(total, page, limit)

    def list_mine(self, account_id: str):
        """Return `(organized, joined)` sessions for `account_id`."""
        return self.session_repo.list_organized_by(account_id), self.session_repo.list_joined_by(account_id)

    def join(self, session_id: str, account_id: str) -> models.StudySession:
        study_session = self.get(session_id)
        if study_session.organizer_id == account_id:
            raise InvalidState('Cannot join your own session', code='CANNOT_JOIN_OWN_SESSION')
        membership.add_participant(study_session, account_id)
        study_session = self.session_repo.save(study_session)
        _log_event("session_joined", session_id=session_id, account_id=account_id,
                   participants=len(study_session.participants))
        return study_session

    def leave(self, session_id: str, account_id: str) -> models.StudySession:
        study_session = self.get(session_id)
        membership.remove_participant(study_session, account_id)
        study_session = self.session_repo.save(study_session)
        _log_event("session_left", session_id=session_id, account_id=account_id,
                   participants=len(study_session.participants))
        return study_session

    def _require_organizer(self, study_session: models.StudySession, account_id: str, action: str) -> None:
        if study_session.organizer_id != account_id:
            raise Forbidden(f'Not authorized to {action} this session', code='NOT_AUTHORIZED')

    def update(self, session_id: str, account_id: str, data: dict) -> models.StudySession:
        """Apply allow-listed changes; organizer only.

        The start/end rule is checked against the merged values and the
        capacity cannot drop below the current participant count.
        """
        changes = {k: v for k, v in data.items() if k in SESSION_UPDATABLE_FIELDS and v is not None}
        ensure_valid(validate_session(changes, partial=True))
        study_session = self.get(session_id)
        self._require_organizer(study_session, account_id, 'update')
        _check_time_range(changes.get('start_time', study_session.start_time),
                          changes.get('end_time', study_session.end_time))
        capacity = changes.get('max_participants', study_session.max_participants)
        if capacity < len(study_session.participants):
            raise InvalidState('Maximum participants cannot be lower than the current participant count',
                               code='CAPACITY_BELOW_PARTICIPANTS')
        for field, value in changes.items():
            if field == 'date':
                value = parse_session_date(value)
            elif field in ('start_time', 'end_time'):
                value = normalize_time(value)
            elif isinstance(value, str) and field != 'status':
                value = value.strip()
            setattr(study_session, field, value)
        study_session.updated_at = models.utcnow()
        study_session = self.session_repo.save(study_session)
        _log_event("session_updated", session_id=session_id, fields=sorted(changes))
        return study_session

    def delete(self, session_id: str, account_id: str) -> None:
        study_session = self.get(session_id)
        self._require_organizer(study_session, account_id, 'delete')
        self.session_repo.delete(study_session)
        _log_event("session_deleted", session_id=session_id, organizer_id=account_id)
