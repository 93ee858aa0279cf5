import os
import pytest

# Must be set before `studyhub` is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTH_RATE_LIMIT_PER_MIN", "10000")
os.environ.setdefault("JWT_SECRET", "test-secret-for-the-studyhub-suite-0123456789")


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test empty tables in the shared in-memory database."""
    from studyhub.database import create_db_and_tables, drop_db_and_tables
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from studyhub.main import app
    return TestClient(app)


def register_and_login(client, username, email=None, password='password123'):
    """Register an account through the API and return auth headers and the id."""
    email = email or f'{username}@example.com'
    r = client.post('/api/auth/register', json={'username': username, 'email': email, 'password': password})
    assert r.status_code == 201, r.text
    login = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert login.status_code == 200, login.text
    data = login.json()['data']
    return {'Authorization': f"Bearer {data['token']}"}, data['user']['id']


@pytest.fixture
def make_user(client):
    def _make(username, **kwargs):
        return register_and_login(client, username, **kwargs)
    return _make
