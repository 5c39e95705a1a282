# tests/conftest.py
# PURPOSE: build a fresh app (fresh in-memory stores) per test and hand out a TestClient.

# Ensure project root is on sys.path so `import taskboard` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
from fastapi.testclient import TestClient

from taskboard.auth import AuthService
from taskboard.config import Settings
from taskboard.ids import IdGenerator
from taskboard.main import create_app
from taskboard.store import CredentialStore, TaskStore
from taskboard.tasks import TaskService

TEST_SECRET = "test-secret"


@pytest.fixture()
def settings():
    # Cheap bcrypt cost keeps the suite fast; ignore any developer .env
    return Settings(_env_file=None, JWT_SECRET=TEST_SECRET, BCRYPT_ROUNDS=4, HASH_WORKERS=2)


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    # Context manager runs the lifespan (logging setup, hashing pool shutdown)
    with TestClient(app) as c:
        yield c


def _register(client, username, email, full_name="Test User", password="secret1"):
    r = client.post(
        "/auth/register",
        json={"username": username, "password": password, "email": email, "fullName": full_name},
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def alice(client):
    return _register(client, "alice", "a@x.com", "Alice A")


@pytest.fixture()
def bob(client):
    return _register(client, "bob", "b@x.com", "Bob B")


@pytest.fixture()
def alice_headers(alice):
    return {"Authorization": f"Bearer {alice['token']}"}


@pytest.fixture()
def bob_headers(bob):
    return {"Authorization": f"Bearer {bob['token']}"}


# --- Service-level fixtures (no HTTP) ---------------------------------------


@pytest.fixture()
def ids():
    return IdGenerator()


@pytest.fixture()
def users():
    return CredentialStore()


@pytest.fixture()
def task_store():
    return TaskStore()


@pytest.fixture()
def auth_service(users, ids, settings):
    service = AuthService(users, ids, settings)
    yield service
    service.close()


@pytest.fixture()
def task_service(task_store, ids, users, settings):
    return TaskService(task_store, ids, users, settings)
