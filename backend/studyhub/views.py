"""Response shaping for API payloads.

Documents reference accounts by id. Before a group or session leaves the
API, the ids are collected, resolved with one batch lookup and replaced
by an `{id, username, email}` summary. Nothing else from the account
record (in particular the password hash) is ever exposed.
"""

from typing import Dict, Iterable, Optional

from sqlmodel import Session

from . import models, repositories
from .membership import is_full
from .models import as_utc
from .resources import can_view


def account_summary(account: Optional[models.Account], account_id: str) -> dict:
    if account is None:
        return {'id': account_id, 'username': None, 'email': None}
    return {'id': account.id, 'username': account.username, 'email': account.email}


def account_profile(account: models.Account) -> dict:
    """Public view of the caller's own account."""
    return {
        'id': account.id,
        'username': account.username,
        'email': account.email,
        'date_of_birth': account.date_of_birth,
        'college_name': account.college_name,
        'current_year': account.current_year,
    }


class Hydrator:
    """Resolve account ids to summaries for one response."""
    def __init__(self, session: Session):
        self.accounts = repositories.AccountRepository(session)
        self._cache: Dict[str, models.Account] = {}

    def load(self, account_ids: Iterable[str]) -> None:
        missing = {i for i in account_ids if i not in self._cache}
        if missing:
            self._cache.update(self.accounts.get_many(missing))

    def summary(self, account_id: str) -> dict:
        return account_summary(self._cache.get(account_id), account_id)

    def resource(self, resource: dict) -> dict:
        out = {k: v for k, v in resource.items() if k != 'creator_id'}
        out['creator'] = self.summary(resource.get('creator_id'))
        return out

    def group(self, group: models.StudyGroup, viewer_id: Optional[str] = None) -> dict:
        """Render a group; resources of a private group are shown to members only."""
        visible = can_view(group, viewer_id)
        return {
            'id': group.id,
            'name': group.name,
            'description': group.description,
            'subject': group.subject,
            'creator': self.summary(group.creator_id),
            'members': [self.summary(m) for m in group.members],
            'member_count': len(group.members),
            'max_members': group.max_members,
            'is_public': group.is_public,
            'resources': [self.resource(r) for r in group.resources] if visible else [],
            'created_at': as_utc(group.created_at).isoformat(),
            'updated_at': as_utc(group.updated_at).isoformat(),
        }

    def session(self, study_session: models.StudySession) -> dict:
        return {
            'id': study_session.id,
            'title': study_session.title,
            'description': study_session.description,
            'subject': study_session.subject,
            'date': as_utc(study_session.date).isoformat(),
            'start_time': study_session.start_time,
            'end_time': study_session.end_time,
            'location': study_session.location,
            'max_participants': study_session.max_participants,
            'organizer': self.summary(study_session.organizer_id),
            'participants': [
                {'user': self.summary(p.get('user_id')), 'joined_at': p.get('joined_at')}
                for p in study_session.participants
            ],
            'is_full': is_full(study_session),
            'status': study_session.status,
            'is_public': study_session.is_public,
            'created_at': as_utc(study_session.created_at).isoformat(),
            'updated_at': as_utc(study_session.updated_at).isoformat(),
        }


def group_ids(group: models.StudyGroup, viewer_id: Optional[str] = None):
    yield group.creator_id
    yield from group.members
    if can_view(group, viewer_id):
        for r in group.resources:
            yield r.get('creator_id')


def session_ids(study_session: models.StudySession):
    yield study_session.organizer_id
    for p in study_session.participants:
        yield p.get('user_id')


def render_groups(session: Session, groups, viewer_id: Optional[str] = None) -> list:
    hydrator = Hydrator(session)
    hydrator.load(i for g in groups for i in group_ids(g, viewer_id))
    return [hydrator.group(g, viewer_id) for g in groups]


def render_group(session: Session, group: models.StudyGroup, viewer_id: Optional[str] = None) -> dict:
    return render_groups(session, [group], viewer_id)[0]


def render_sessions(session: Session, sessions) -> list:
    hydrator = Hydrator(session)
    hydrator.load(i for s in sessions for i in session_ids(s))
    return [hydrator.session(s) for s in sessions]


def render_session(session: Session, study_session: models.StudySession) -> dict:
    return render_sessions(session, [study_session])[0]


def render_resources(session: Session, resources) -> list:
    hydrator = Hydrator(session)
    hydrator.load(r.get('creator_id') for r in resources)
    return [hydrator.resource(r) for r in resources]
