"""Membership rules for study groups and study sessions.

Group members and session participants follow similar add/remove rules
but differ in two ways that matter:

- a group's creator is a member and can never leave; a session's
  organizer is never a participant at all (the service refuses to let the
  organizer join before these functions run);
- a group reports a duplicate join before a full group, a session
  reports a full session before a duplicate join.

The functions here only change the in-memory document. They always
assign a fresh list so the JSON column is flagged dirty, and the calling
service persists the whole document afterwards.
"""

from datetime import datetime
from typing import Optional

from .errors import CapacityExceeded, Conflict, InvalidState
from .models import StudyGroup, StudySession, utcnow


def is_member(group: StudyGroup, account_id: str) -> bool:
    return account_id in group.members


def add_member(group: StudyGroup, account_id: str) -> StudyGroup:
    """Append `account_id` to the group's members.

    Raises `Conflict` (`ALREADY_MEMBER`) for an existing member and
    `CapacityExceeded` (`GROUP_FULL`) when the group is at capacity.
    """
    if is_member(group, account_id):
        raise Conflict('You are already a member of this group', code='ALREADY_MEMBER')
    if len(group.members) >= group.max_members:
        raise CapacityExceeded('Group is full', code='GROUP_FULL')
    group.members = [*group.members, account_id]
    group.updated_at = utcnow()
    return group


def remove_member(group: StudyGroup, account_id: str) -> StudyGroup:
    """Remove `account_id` from the group; absent ids are a no-op.

    The creator cannot leave (`InvalidState`, `CREATOR_CANNOT_LEAVE`).
    """
    if account_id == group.creator_id:
        raise InvalidState('Creator cannot leave the group', code='CREATOR_CANNOT_LEAVE')
    group.members = [m for m in group.members if m != account_id]
    group.updated_at = utcnow()
    return group


def is_participant(session: StudySession, account_id: str) -> bool:
    return any(p.get('user_id') == account_id for p in session.participants)


def is_full(session: StudySession) -> bool:
    return len(session.participants) >= session.max_participants


def add_participant(session: StudySession, account_id: str, joined_at: Optional[datetime] = None) -> StudySession:
    """Append `{user_id, joined_at}` to the session's participants.

    Raises `CapacityExceeded` (`SESSION_FULL`) first, then `Conflict`
    (`ALREADY_JOINED`).
    """
    if is_full(session):
        raise CapacityExceeded('Session is full', code='SESSION_FULL')
    if is_participant(session, account_id):
        raise Conflict('User already joined this session', code='ALREADY_JOINED')
    entry = {'user_id': account_id, 'joined_at': (joined_at or utcnow()).isoformat()}
    session.participants = [*session.participants, entry]
    session.updated_at = utcnow()
    return session


def remove_participant(session: StudySession, account_id: str) -> StudySession:
    session.participants = [p for p in session.participants if p.get('user_id') != account_id]
    session.updated_at = utcnow()
    return session
