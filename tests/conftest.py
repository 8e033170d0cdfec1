"""
Shared pytest fixtures: an app bound to a throwaway SQLite file, a test
client, and small factories for users, books and bearer headers.
"""

from datetime import datetime

import pytest

from library_app import create_app
from library_app.config import TestConfig
from library_app.extensions import db
from library_app.services.auth_service import AuthService
from library_app.services.book_service import BookService

# fixed clock for service-level tests
NOW = datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'library_test.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(username=None, role="student", password="secret", **extra):
        counter["n"] += 1
        return AuthService.provision_user(
            username=username or f"user{counter['n']}",
            password=password,
            role=role,
            **extra,
        )

    return _make_user


@pytest.fixture
def make_book(app):
    counter = {"n": 0}

    def _make_book(title=None, copies=1, **extra):
        counter["n"] += 1
        data = {
            "title": title or f"Book {counter['n']}",
            "author": extra.pop("author", "Some Author"),
            "isbn": extra.pop("isbn", f"ISBN-{counter['n']:04d}"),
            "totalCopies": copies,
        }
        data.update(extra)
        return BookService.add_book(data)

    return _make_book


@pytest.fixture
def login(client):
    def _login(username, password="secret", role="student"):
        resp = client.post("/api/login", json={"role": role, "username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['accessToken']}"}

    return _login


@pytest.fixture
def staff_headers(make_user, login):
    make_user("desk", role="assistant")
    return login("desk", role="assistant")


@pytest.fixture
def admin_headers(make_user, login):
    make_user("boss", role="admin")
    return login("boss", role="admin")
