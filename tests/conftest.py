"""Shared fixtures: an app on in-memory SQLite, users, songs and clients."""

import pytest

import store
from app import create_app
from models import db, User


TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret",
    "LOG_LEVEL": "WARNING",
}


@pytest.fixture
def app():
    """App with a fresh schema and an active app context."""
    app = create_app(TEST_CONFIG)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def _make_user(username: str, password: str = "secret") -> User:
    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def user(app):
    return _make_user("alice")


@pytest.fixture
def other_user(app):
    return _make_user("bob")


@pytest.fixture
def make_song(user):
    """Factory creating songs owned by ``user``."""
    counter = {"n": 0}

    def _make(title=None, lyrics="La la la", owner=None):
        counter["n"] += 1
        owner_id = owner.id if owner is not None else user.id
        return store.create_song(owner_id, title or f"Song {counter['n']}", lyrics)

    return _make


@pytest.fixture
def setlist(user):
    return store.create_setlist(user.id, "Gig1")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client, user):
    """Test client logged in as ``user``."""
    response = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert response.status_code == 200
    return client
