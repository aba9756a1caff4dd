"""
Unit tests for auth_service helpers that need no app or database.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from creaturecrew.app.services import auth_service


def test_hash_token_is_sha256_hex():
    assert auth_service._hash_token("abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(auth_service._hash_token("anything")) == 64


def test_as_utc_tags_naive_datetimes():
    naive = datetime(2026, 1, 1, 12, 0)
    assert auth_service._as_utc(naive).tzinfo == timezone.utc


def test_as_utc_leaves_aware_datetimes_alone():
    aware = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert auth_service._as_utc(aware) is aware


def test_build_user_dict_never_leaks_password_hash():
    user = SimpleNamespace(
        id=1,
        username="alice",
        email="alice@test.com",
        password_hash="$2b$secret",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )

    result = auth_service._build_user_dict(user, group_id=4)

    assert result == {
        "id": 1,
        "username": "alice",
        "email": "alice@test.com",
        "group_id": 4,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
