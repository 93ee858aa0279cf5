GROUP = {'name': 'Biology Study', 'description': 'Cell biology and genetics', 'subject': 'Biology'}


def _group_with_members(client, make_user):
    a_headers, alice_id = make_user('alice')
    c_headers, _ = make_user('carol')
    o_headers, _ = make_user('owner')
    group = client.post('/api/groups/create', json=GROUP, headers=o_headers).json()['data']['group']
    for headers in (a_headers, c_headers):
        client.post('/api/groups/join', json={'group_id': group['id']}, headers=headers)
    return group, a_headers, c_headers, o_headers, alice_id


def test_add_list_and_delete_resource(client, make_user):
    group, a_headers, c_headers, _, alice_id = _group_with_members(client, make_user)
    url = f"/api/groups/{group['id']}/resources"
    r = client.post(url, json={'title': 'Mitosis slides', 'url': 'https://example.com/m.pdf'}, headers=a_headers)
    assert r.status_code == 201
    resource = r.json()['data']['resource']
    assert resource['creator'] == {'id': alice_id, 'username': 'alice', 'email': 'alice@example.com'}
    assert resource['kind'] == 'resource'

    listed = client.get(url).json()['data']['resources']
    assert len(listed) == 1

    r = client.delete(f"{url}/{resource['id']}", headers=c_headers)
    assert r.status_code == 403
    assert r.json()['error']['code'] == 'PERMISSION_DENIED'

    r = client.delete(f"{url}/{resource['id']}", headers=a_headers)
    assert r.status_code == 200
    assert client.get(url).json()['data']['resources'] == []


def test_group_creator_can_update_any_resource(client, make_user):
    group, a_headers, _, o_headers, alice_id = _group_with_members(client, make_user)
    url = f"/api/groups/{group['id']}/resources"
    resource = client.post(url, json={'title': 'Draft'}, headers=a_headers).json()['data']['resource']
    r = client.put(f"{url}/{resource['id']}", json={'title': 'Final', 'kind': 'note', 'creator': 'owner'}, headers=o_headers)
    assert r.status_code == 200
    updated = r.json()['data']['resource']
    assert updated['title'] == 'Final'
    assert updated['kind'] == 'note'
    assert updated['creator']['id'] == alice_id


def test_non_member_cannot_add(client, make_user):
    group, *_ = _group_with_members(client, make_user)
    s_headers, _ = make_user('stranger')
    r = client.post(f"/api/groups/{group['id']}/resources", json={'title': 'Spam'}, headers=s_headers)
    assert r.status_code == 403
    assert r.json()['error']['code'] == 'NOT_A_MEMBER'


def test_missing_title_and_missing_resource(client, make_user):
    group, a_headers, *_ = _group_with_members(client, make_user)
    url = f"/api/groups/{group['id']}/resources"
    r = client.post(url, json={'url': 'https://example.com'}, headers=a_headers)
    assert r.status_code == 400
    assert r.json()['error']['details'][0]['field'] == 'title'
    r = client.delete(f"{url}/nope", headers=a_headers)
    assert r.status_code == 404
    assert r.json()['error']['code'] == 'RESOURCE_NOT_FOUND'


def test_update_can_clear_url_and_description(client, make_user):
    group, a_headers, *_ = _group_with_members(client, make_user)
    url = f"/api/groups/{group['id']}/resources"
    resource = client.post(url, json={'title': 'Slides', 'url': 'https://example.com/old.pdf',
                                      'description': 'Old link'}, headers=a_headers).json()['data']['resource']
    r = client.put(f"{url}/{resource['id']}", json={'url': None, 'description': None}, headers=a_headers)
    assert r.status_code == 200
    updated = r.json()['data']['resource']
    assert updated['url'] is None
    assert updated['description'] is None
    assert updated['title'] == 'Slides'
    listed = client.get(url).json()['data']['resources']
    assert listed[0]['url'] is None
