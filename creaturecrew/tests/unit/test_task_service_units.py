"""
Unit tests for task_service.

DB-free: session is a MagicMock; group and mood services are patched.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from creaturecrew.app.errors import AppError, ErrorCode
from creaturecrew.app.services import task_service

_TS = "creaturecrew.app.services.task_service"


@patch(f"{_TS}.mood_service.recompute")
@patch(f"{_TS}.group_service.get_group")
def test_bulk_create_empty_is_a_no_op(mock_get_group, mock_recompute):
    session = MagicMock()

    assert task_service.bulk_create(1, 2, [], session) == []

    mock_get_group.assert_not_called()
    mock_recompute.assert_not_called()
    session.add_all.assert_not_called()


@patch(f"{_TS}.mood_service.recompute", return_value=0)
@patch(f"{_TS}.group_service.get_group")
def test_bulk_create_keeps_order_and_duplicates(mock_get_group, mock_recompute):
    session = MagicMock()

    tasks = task_service.bulk_create(1, 2, ["Read", "Read", "Walk"], session)

    assert [t.description for t in tasks] == ["Read", "Read", "Walk"]
    assert all(t.completed is False for t in tasks)
    assert all((t.group_id, t.user_id) == (1, 2) for t in tasks)
    mock_get_group.assert_called_once_with(1, session, caller_id=2)
    session.add_all.assert_called_once_with(tasks)
    mock_recompute.assert_called_once_with(1, session)


@patch(f"{_TS}.mood_service.recompute")
@patch(f"{_TS}.group_service.get_group")
def test_bulk_create_rejects_blank_description(mock_get_group, mock_recompute):
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        task_service.bulk_create(1, 2, ["Read", "  "], session)

    assert exc_info.value.code == ErrorCode.INVALID_FIELD
    assert exc_info.value.field == "descriptions"
    session.add_all.assert_not_called()
    mock_recompute.assert_not_called()


@patch(f"{_TS}.group_service.get_group")
def test_bulk_create_non_member_is_forbidden(mock_get_group):
    mock_get_group.side_effect = AppError(ErrorCode.FORBIDDEN, "no", 403)
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        task_service.bulk_create(1, 99, ["Read"], session)

    assert exc_info.value.http_status == 403
    session.add_all.assert_not_called()


def test_toggle_missing_task_raises_404():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        task_service.toggle(task_id=5, requesting_user_id=1, session=session)

    assert exc_info.value.code == ErrorCode.TASK_NOT_FOUND


@patch(f"{_TS}.mood_service.recompute")
def test_toggle_by_non_owner_changes_nothing(mock_recompute):
    session = MagicMock()
    task = SimpleNamespace(id=5, group_id=1, user_id=10, completed=False)
    session.get.return_value = task

    with pytest.raises(AppError) as exc_info:
        task_service.toggle(task_id=5, requesting_user_id=11, session=session)

    assert exc_info.value.code == ErrorCode.FORBIDDEN
    assert exc_info.value.http_status == 403
    assert task.completed is False
    session.flush.assert_not_called()
    mock_recompute.assert_not_called()


@patch(f"{_TS}.mood_service.recompute")
def test_toggle_flips_and_recomputes(mock_recompute):
    session = MagicMock()
    task = SimpleNamespace(id=5, group_id=1, user_id=10, completed=False)
    session.get.return_value = task

    result = task_service.toggle(task_id=5, requesting_user_id=10, session=session)

    assert result is task
    assert task.completed is True
    session.refresh.assert_called_once_with(task)
    mock_recompute.assert_called_once_with(1, session)


@patch(f"{_TS}.bulk_create")
@patch(f"{_TS}.group_service.get_group")
def test_create_suggested_tasks_uses_suggestions_verbatim(mock_get_group, mock_bulk_create):
    session = MagicMock()
    suggest = MagicMock(return_value=["  Walk the dog ", "Call mum"])

    task_service.create_suggested_tasks(1, 2, "busy week", suggest, session)

    suggest.assert_called_once_with("busy week")
    mock_bulk_create.assert_called_once_with(1, 2, ["  Walk the dog ", "Call mum"], session)


@patch(f"{_TS}.group_service.get_group")
def test_create_suggested_tasks_checks_membership_first(mock_get_group):
    mock_get_group.side_effect = AppError(ErrorCode.FORBIDDEN, "no", 403)
    suggest = MagicMock()

    with pytest.raises(AppError):
        task_service.create_suggested_tasks(1, 99, "anything", suggest, MagicMock())

    suggest.assert_not_called()
