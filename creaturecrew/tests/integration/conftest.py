"""
tests/integration/conftest.py — Fixtures and helpers for the HTTP-level tests.

  - The app is built once per session with create_app("testing"), which points
    at in-memory SQLite unless TEST_DATABASE_URL says otherwise.
  - Tables come from db.create_all(); Alembic is not involved.
  - After every test all rows are deleted child-first so tests stay isolated.

Helpers are plain functions rather than fixtures so tests can call them with
whatever arguments they need:
  - register(client, ...)       → {"user", "access_token", "refresh_token"}
  - auth_headers(token)         → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)     → group dict (caller is founder)
  - join(client, ...)           → HTTP response of POST /groups/join
  - add_tasks(client, ...)      → HTTP response of POST /groups/:id/tasks
  - toggle(client, ...)         → HTTP response of POST /tasks/:id/toggle
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from creaturecrew.app import create_app
from creaturecrew.app.extensions import db as _db

# Child tables first.
_TABLES = ("tasks", "memberships", "refresh_tokens", "groups", "users")


@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes every row after each test."""
    yield

    with app.app_context():
        _db.session.rollback()
        with _db.engine.connect() as conn:
            for table in _TABLES:
                conn.execute(text(f"DELETE FROM {table}"))
            conn.commit()


@pytest.fixture
def client(app):
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
) -> dict:
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Test Group") -> dict:
    """Creates a group as the token owner and returns the group data dict."""
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, code: str):
    return client.post(
        "/api/v1/groups/join",
        json={"code": code},
        headers=auth_headers(token),
    )


def add_tasks(client, token: str, group_id: int, descriptions: list):
    return client.post(
        f"/api/v1/groups/{group_id}/tasks",
        json={"descriptions": descriptions},
        headers=auth_headers(token),
    )


def toggle(client, token: str, task_id: int):
    return client.post(
        f"/api/v1/tasks/{task_id}/toggle",
        headers=auth_headers(token),
    )
