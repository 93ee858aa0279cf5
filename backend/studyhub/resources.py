"""Resource/note ledger embedded in a study group.

Resources are dicts stored in `StudyGroup.resources`. Only the resource's
creator or the group's creator may change or remove one. The per-resource
`is_public` flag is stored and returned but never used to filter lists;
access is decided by the group's visibility alone.
"""

from typing import List, Optional

from .errors import Forbidden, NotFound
from .membership import is_member
from .models import StudyGroup, new_id, utcnow

UPDATABLE_FIELDS = ('title', 'url', 'description', 'kind', 'is_public')
CLEARABLE_FIELDS = ('url', 'description')


def find_resource(group: StudyGroup, resource_id: str) -> dict:
    for resource in group.resources:
        if resource.get('id') == resource_id:
            return resource
    raise NotFound('Resource not found', code='RESOURCE_NOT_FOUND')


def can_modify(group: StudyGroup, resource: dict, requester_id: str) -> bool:
    return requester_id in (resource.get('creator_id'), group.creator_id)


def can_view(group: StudyGroup, requester_id: Optional[str]) -> bool:
    """Public groups show their resources to anyone, private ones to members."""
    return group.is_public or (requester_id is not None and is_member(group, requester_id))


def _clean(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


def append_resource(group: StudyGroup, requester_id: str, fields: dict) -> dict:
    """Append a new resource created by `requester_id` and return it.

    The caller must already have checked that the requester is a member.
    """
    resource = {
        'id': new_id(),
        'title': fields['title'].strip(),
        'url': _clean(fields.get('url')),
        'description': _clean(fields.get('description')),
        'kind': fields.get('kind') or 'resource',
        'creator_id': requester_id,
        'is_public': True if fields.get('is_public') is None else fields['is_public'],
        'created_at': utcnow().isoformat(),
    }
    group.resources = [*group.resources, resource]
    group.updated_at = utcnow()
    return resource


def update_resource(group: StudyGroup, resource_id: str, requester_id: str, fields: dict) -> dict:
    """Apply the allow-listed `fields` to a resource and return it.

    Keys outside `UPDATABLE_FIELDS` are ignored. An explicit `None` (or
    blank string) clears `url` and `description`; for the other fields
    `None` leaves the stored value alone.
    """
    current = find_resource(group, resource_id)
    if not can_modify(group, current, requester_id):
        raise Forbidden('Permission denied', code='PERMISSION_DENIED')
    changes = {}
    for key, value in fields.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key in CLEARABLE_FIELDS:
            changes[key] = _clean(value)
        elif value is not None:
            changes[key] = value.strip() if key == 'title' else value
    updated = {**current, **changes}
    group.resources = [updated if r.get('id') == resource_id else r for r in group.resources]
    group.updated_at = utcnow()
    return updated


def remove_resource(group: StudyGroup, resource_id: str, requester_id: str) -> dict:
    """Remove a resource and return the removed entry."""
    current = find_resource(group, resource_id)
    if not can_modify(group, current, requester_id):
        raise Forbidden('Permission denied', code='PERMISSION_DENIED')
    group.resources = [r for r in group.resources if r.get('id') != resource_id]
    group.updated_at = utcnow()
    return current


def list_resources(group: StudyGroup, requester_id: Optional[str] = None) -> List[dict]:
    """Return every resource of the group.

    Private groups are readable by current members only.
    """
    if not can_view(group, requester_id):
        raise Forbidden('Access denied', code='ACCESS_DENIED')
    return list(group.resources)
