def test_register_login_and_verify(client):
    r = client.post('/api/auth/register', json={
        'username': 'alice', 'email': 'Alice@Example.com ', 'password': 'password123',
        'college_name': 'Test College', 'current_year': '2nd Year', 'date_of_birth': '2000-01-01'})
    assert r.status_code == 201
    user = r.json()['data']['user']
    assert user['email'] == 'alice@example.com'
    assert 'password' not in user and 'password_hash' not in user

    login = client.post('/api/auth/login', json={'email': 'ALICE@example.com', 'password': 'password123'})
    assert login.status_code == 200
    token = login.json()['data']['token']

    me = client.get('/api/auth/verify', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.json()['data']['user'] == {'id': user['id'], 'username': 'alice', 'email': 'alice@example.com'}


def test_duplicate_email_and_username(client, make_user):
    make_user('alice')
    r = client.post('/api/auth/register', json={'username': 'other', 'email': 'alice@example.com', 'password': 'password123'})
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'EMAIL_EXISTS'
    r = client.post('/api/auth/register', json={'username': 'alice', 'email': 'new@example.com', 'password': 'password123'})
    assert r.status_code == 409
    assert r.json()['error']['code'] == 'USERNAME_EXISTS'


def test_registration_validation_details(client):
    r = client.post('/api/auth/register', json={'username': 'al', 'email': 'bad', 'password': '1'})
    assert r.status_code == 400
    err = r.json()['error']
    assert err['code'] == 'VALIDATION_ERROR'
    assert {d['field'] for d in err['details']} == {'username', 'email', 'password'}


def test_wrong_type_is_reported_as_validation_error(client):
    r = client.post('/api/auth/register', json={'username': ['x'], 'email': 'a@b.co', 'password': 'password123'})
    assert r.status_code == 400
    assert r.json()['error']['details'][0]['field'] == 'username'


def test_bad_password_is_rejected(client, make_user):
    make_user('alice')
    r = client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'wrong-password'})
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'INVALID_CREDENTIALS'


def test_protected_routes_need_a_valid_token(client):
    r = client.get('/api/auth/verify')
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'NO_TOKEN'
    r = client.get('/api/auth/verify', headers={'Authorization': 'Bearer not-a-jwt'})
    assert r.status_code == 401
    assert r.json()['error']['code'] == 'INVALID_TOKEN'


def test_request_id_header_exists(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert 'X-Request-ID' in r.headers


def test_malformed_email_is_rejected_at_registration(client):
    r = client.post('/api/auth/register', json={'username': 'alice', 'email': 'a@..com', 'password': 'password123'})
    assert r.status_code == 400
    assert [d['field'] for d in r.json()['error']['details']] == ['email']
