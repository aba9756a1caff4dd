"""
Unit tests for membership_service.join_by_code().

DB-free: the session is a MagicMock and group_service lookups are patched.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.services import membership_service

_GS = "creaturecrew.app.services.group_service"


@patch(f"{_GS}.get_group_by_code", return_value=None)
def test_unknown_code_raises_invalid_invite_code(mock_by_code):
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        membership_service.join_by_code("nope42", user_id=1, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.INVALID_INVITE_CODE
    assert err.http_status == 404
    assert err.field == "code"
    session.add.assert_not_called()


@patch(f"{_GS}.get_group_by_user")
@patch(f"{_GS}.get_user_or_404")
@patch(f"{_GS}.get_group_by_code")
def test_existing_member_is_refused_before_insert(mock_by_code, mock_get_user, mock_by_user):
    session = MagicMock()
    mock_by_code.return_value = SimpleNamespace(id=2)
    mock_by_user.return_value = SimpleNamespace(id=2)  # same group: re-join is refused too

    with pytest.raises(AppError) as exc_info:
        membership_service.join_by_code("ABCDEF", user_id=1, session=session)

    assert exc_info.value.code == ErrorCode.ALREADY_IN_GROUP
    session.add.assert_not_called()


@patch(f"{_GS}.get_group_by_user", return_value=None)
@patch(f"{_GS}.get_user_or_404")
@patch(f"{_GS}.get_group_by_code")
def test_join_adds_one_membership(mock_by_code, mock_get_user, mock_by_user):
    session = MagicMock()
    group = SimpleNamespace(id=2)
    mock_by_code.return_value = group

    result = membership_service.join_by_code(" abcdef ", user_id=1, session=session)

    assert result is group
    mock_by_code.assert_called_once_with(" abcdef ", session)
    membership = session.add.call_args.args[0]
    assert (membership.user_id, membership.group_id) == (1, 2)
    session.flush.assert_called_once()


@patch(f"{_GS}.get_group_by_user", return_value=None)
@patch(f"{_GS}.get_user_or_404")
@patch(f"{_GS}.get_group_by_code")
def test_unique_violation_at_flush_becomes_already_in_group(mock_by_code, mock_get_user, mock_by_user):
    session = MagicMock()
    mock_by_code.return_value = SimpleNamespace(id=2)
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(AppError) as exc_info:
        membership_service.join_by_code("ABCDEF", user_id=1, session=session)

    assert exc_info.value.code == ErrorCode.ALREADY_IN_GROUP
    assert exc_info.value.http_status == 409
    session.rollback.assert_called_once()


@patch(f"{_GS}.get_user_or_404")
@patch(f"{_GS}.get_group_by_code")
def test_code_is_checked_before_user(mock_by_code, mock_get_user):
    mock_by_code.return_value = None

    with pytest.raises(AppError):
        membership_service.join_by_code("ZZZZZZ", user_id=1, session=MagicMock())

    mock_get_user.assert_not_called()
