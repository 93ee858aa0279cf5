import pytest

from studyhub import resources
from studyhub.errors import Forbidden, NotFound
from studyhub.models import StudyGroup


def _group(is_public=True):
    return StudyGroup(name='Chemistry', description='Organic chemistry notes', subject='Chemistry',
                      creator_id='owner', members=['owner', 'alice', 'carol'], is_public=is_public)


def test_append_sets_creator_and_defaults():
    group = _group()
    res = resources.append_resource(group, 'alice', {'title': ' Notes ', 'url': None})
    assert res['creator_id'] == 'alice'
    assert res['title'] == 'Notes'
    assert res['kind'] == 'resource'
    assert res['is_public'] is True
    assert res['created_at']
    assert group.resources == [res]


@pytest.mark.parametrize('requester', ['carol', 'stranger'])
def test_only_creators_can_remove_or_update(requester):
    group = _group()
    res = resources.append_resource(group, 'alice', {'title': 'Slides'})
    with pytest.raises(Forbidden) as exc:
        resources.remove_resource(group, res['id'], requester)
    assert exc.value.code == 'PERMISSION_DENIED'
    with pytest.raises(Forbidden):
        resources.update_resource(group, res['id'], requester, {'title': 'x'})
    assert len(group.resources) == 1


@pytest.mark.parametrize('requester', ['alice', 'owner'])
def test_resource_or_group_creator_can_remove(requester):
    group = _group()
    res = resources.append_resource(group, 'alice', {'title': 'Slides'})
    resources.remove_resource(group, res['id'], requester)
    assert group.resources == []


def test_update_ignores_fields_outside_allow_list():
    group = _group()
    res = resources.append_resource(group, 'alice', {'title': 'Slides'})
    updated = resources.update_resource(group, res['id'], 'owner', {
        'title': 'Slides v2', 'kind': 'note', 'creator_id': 'owner', 'id': 'other'})
    assert updated['title'] == 'Slides v2'
    assert updated['kind'] == 'note'
    assert updated['creator_id'] == 'alice'
    assert updated['id'] == res['id']
    assert group.resources[0] == updated


def test_missing_resource_is_not_found():
    with pytest.raises(NotFound) as exc:
        resources.remove_resource(_group(), 'nope', 'owner')
    assert exc.value.code == 'RESOURCE_NOT_FOUND'


def test_private_group_lists_for_members_only():
    group = _group(is_public=False)
    resources.append_resource(group, 'alice', {'title': 'Hidden', 'is_public': False})
    with pytest.raises(Forbidden) as exc:
        resources.list_resources(group, 'stranger')
    assert exc.value.code == 'ACCESS_DENIED'
    with pytest.raises(Forbidden):
        resources.list_resources(group, None)
    # per-resource visibility does not filter the list
    assert len(resources.list_resources(group, 'carol')) == 1


def test_public_group_lists_for_anyone():
    group = _group()
    resources.append_resource(group, 'alice', {'title': 'Open'})
    assert len(resources.list_resources(group)) == 1


def test_update_with_null_clears_optional_fields():
    group = _group()
    res = resources.append_resource(group, 'alice', {
        'title': 'Slides', 'url': 'https://example.com/s.pdf', 'description': 'Week one'})
    updated = resources.update_resource(group, res['id'], 'alice', {'url': None, 'description': '  '})
    assert updated['url'] is None
    assert updated['description'] is None
    assert updated['title'] == 'Slides'


def test_update_with_null_keeps_required_fields():
    group = _group()
    res = resources.append_resource(group, 'alice', {'title': 'Slides', 'kind': 'note', 'is_public': False})
    updated = resources.update_resource(group, res['id'], 'alice', {'title': None, 'kind': None, 'is_public': None})
    assert (updated['title'], updated['kind'], updated['is_public']) == ('Slides', 'note', False)


def test_private_group_visibility_check():
    group = _group(is_public=False)
    assert resources.can_view(group, 'carol')
    assert not resources.can_view(group, 'stranger')
    assert not resources.can_view(group, None)
    assert resources.can_view(_group(), None)
