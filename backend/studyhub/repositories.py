"""Repository classes encapsulating database operations.

Each repository is small and focused on a single document table
(accounts, groups, sessions). Repositories return SQLModel objects and
perform commits/refreshes where appropriate. Groups and sessions are
always written back whole; there is no partial update and no version
check, so the last writer wins.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, col, select

from . import models


class AccountRepository:
    """Lookups and inserts for `Account` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, account: models.Account) -> models.Account:
        """Persist a new account and return the managed instance."""
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def get(self, account_id: str) -> Optional[models.Account]:
        return self.session.get(models.Account, account_id)

    def get_by_email(self, email: str) -> Optional[models.Account]:
        """Return an account by (already normalized) email or `None`."""
        stmt = select(models.Account).where(models.Account.email == email)
        return self.session.exec(stmt).first()

    def get_by_username(self, username: str) -> Optional[models.Account]:
        stmt = select(models.Account).where(models.Account.username == username)
        return self.session.exec(stmt).first()

    def get_many(self, account_ids: Iterable[str]) -> Dict[str, models.Account]:
        """Batch lookup returning `{id: Account}` for the ids that exist."""
        ids = {i for i in account_ids if i}
        if not ids:
            return {}
        stmt = select(models.Account).where(col(models.Account.id).in_(sorted(ids)))
        return {a.id: a for a in self.session.exec(stmt).all()}


class GroupRepository:
    """Persistence for `StudyGroup` documents."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, group: models.StudyGroup) -> models.StudyGroup:
        """Insert or overwrite the whole group document."""
        self.session.add(group)
        self.session.commit()
        self.session.refresh(group)
        return group

    def get(self, group_id: str) -> Optional[models.StudyGroup]:
        return self.session.get(models.StudyGroup, group_id)

    def list_public(self, subject: Optional[str] = None, offset: int = 0, limit: int = 10) -> Tuple[List[models.StudyGroup], int]:
        """Return one page of public groups (newest first) and the total count."""
        conditions = [models.StudyGroup.is_public == True]  # noqa: E712
        if subject:
            conditions.append(models.StudyGroup.subject == subject)
        stmt = (
            select(models.StudyGroup)
            .where(*conditions)
            .order_by(col(models.StudyGroup.created_at).desc())
            .offset(offset)
            .limit(limit)
        )
        total = self.session.exec(select(func.count()).select_from(models.StudyGroup).where(*conditions)).one()
        return list(self.session.exec(stmt).all()), total

    def list_for_member(self, account_id: str, offset: int = 0, limit: int = 10) -> Tuple[List[models.StudyGroup], int]:
        """Return one page of the groups `account_id` belongs to.

        Members live in a JSON column, so the filter runs in Python: every
        group row is loaded and decoded before `offset`/`limit` apply. The
        cost grows with the whole table, not with the page size. Moving
        membership into its own table with an index on the account id is
        the way out once that matters.
        """
        stmt = select(models.StudyGroup).order_by(col(models.StudyGroup.created_at).desc())
        groups = [g for g in self.session.exec(stmt).all() if account_id in g.members]
        return groups[offset:offset + limit], len(groups)


class SessionRepository:
    """Persistence for `StudySession` documents."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, study_session: models.StudySession) -> models.StudySession:
        """Insert or overwrite the whole session document."""
        self.session.add(study_session)
        self.session.commit()
        self.session.refresh(study_session)
        return study_session

    def get(self, session_id: str) -> Optional[models.StudySession]:
        return self.session.get(models.StudySession, session_id)

    def delete(self, study_session: models.StudySession) -> None:
        self.session.delete(study_session)
        self.session.commit()

    def _ordered(self, stmt):
        return stmt.order_by(col(models.StudySession.date), col(models.StudySession.start_time))

    def list_public(self, status: str = 'scheduled', subject: Optional[str] = None,
                    day: Optional[datetime] = None, offset: int = 0, limit: int = 10) -> Tuple[List[models.StudySession], int]:
        """Return one page of public sessions and the total count.

        `subject` is a case-insensitive substring match; `day` restricts
        results to sessions on that calendar day.
        """
        conditions = [models.StudySession.is_public == True, models.StudySession.status == status]  # noqa: E712
        if subject:
            conditions.append(col(models.StudySession.subject).ilike(f'%{subject}%'))
        if day is not None:
            start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            conditions.append(col(models.StudySession.date) >= start)
            conditions.append(col(models.StudySession.date) < start + timedelta(days=1))
        stmt = self._ordered(select(models.StudySession).where(*conditions)).offset(offset).limit(limit)
        total = self.session.exec(select(func.count()).select_from(models.StudySession).where(*conditions)).one()
        return list(self.session.exec(stmt).all()), total

    def list_organized_by(self, account_id: str) -> List[models.StudySession]:
        stmt = self._ordered(select(models.StudySession).where(models.StudySession.organizer_id == account_id))
        return list(self.session.exec(stmt).all())

    def list_joined_by(self, account_id: str) -> List[models.StudySession]:
        """Sessions `account_id` participates in but does not organize.

        Like `GroupRepository.list_for_member`, this scans every session
        not organized by the account and filters the JSON participant list
        in Python.
        """
        stmt = self._ordered(select(models.StudySession).where(models.StudySession.organizer_id != account_id))
        return [s for s in self.session.exec(stmt).all()
                if any(p.get('user_id') == account_id for p in s.participants)]
