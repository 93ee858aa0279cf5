import pytest

from studyhub import membership
from studyhub.errors import CapacityExceeded, Conflict, InvalidState
from studyhub.models import StudyGroup, StudySession, utcnow


def _group(capacity=3, members=None):
    return StudyGroup(name='Algebra', description='Linear algebra study group', subject='Mathematics',
                      creator_id='creator', members=members or ['creator'], max_members=capacity)


def _session(capacity=2):
    return StudySession(title='Review', subject='Physics', date=utcnow(), start_time='10:00', end_time='11:00',
                        location='Room 1', max_participants=capacity, organizer_id='organizer', participants=[])


def test_add_member_below_capacity_grows_members():
    group = _group(capacity=3)
    membership.add_member(group, 'u1')
    assert group.members == ['creator', 'u1']
    assert membership.is_member(group, 'u1')


def test_add_member_when_full_raises_and_keeps_members():
    group = _group(capacity=2, members=['creator', 'u1'])
    with pytest.raises(CapacityExceeded) as exc:
        membership.add_member(group, 'u2')
    assert exc.value.code == 'GROUP_FULL'
    assert group.members == ['creator', 'u1']


def test_add_existing_member_is_conflict_even_when_full():
    group = _group(capacity=2, members=['creator', 'u1'])
    with pytest.raises(Conflict) as exc:
        membership.add_member(group, 'u1')
    assert exc.value.code == 'ALREADY_MEMBER'
    assert group.members == ['creator', 'u1']


def test_creator_cannot_leave():
    group = _group()
    with pytest.raises(InvalidState) as exc:
        membership.remove_member(group, 'creator')
    assert exc.value.code == 'CREATOR_CANNOT_LEAVE'
    assert 'creator' in group.members


def test_remove_absent_member_is_noop():
    group = _group(members=['creator', 'u1'])
    membership.remove_member(group, 'u1')
    membership.remove_member(group, 'u1')
    assert group.members == ['creator']


def test_add_participant_records_join_time():
    session = _session()
    membership.add_participant(session, 'u1')
    assert [p['user_id'] for p in session.participants] == ['u1']
    assert session.participants[0]['joined_at']
    assert membership.is_participant(session, 'u1')


def test_full_session_reported_before_duplicate():
    session = _session(capacity=1)
    membership.add_participant(session, 'u1')
    with pytest.raises(CapacityExceeded) as exc:
        membership.add_participant(session, 'u1')
    assert exc.value.code == 'SESSION_FULL'


def test_duplicate_participant_is_conflict():
    session = _session(capacity=3)
    membership.add_participant(session, 'u1')
    with pytest.raises(Conflict) as exc:
        membership.add_participant(session, 'u1')
    assert exc.value.code == 'ALREADY_JOINED'
    assert len(session.participants) == 1


def test_leaving_session_twice_gives_same_list():
    session = _session(capacity=3)
    membership.add_participant(session, 'u1')
    membership.add_participant(session, 'u2')
    membership.remove_participant(session, 'u1')
    first = list(session.participants)
    membership.remove_participant(session, 'u1')
    assert session.participants == first
    assert [p['user_id'] for p in first] == ['u2']
