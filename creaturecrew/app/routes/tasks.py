"""
routes/tasks.py — Task route handlers.

Registered at url_prefix=/api/v1 because this blueprint owns both the
group-scoped paths (/groups/:id/...) and the task-id path (/tasks/:id/...).

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Every write response carries the group's creature_mood as recomputed in the
same transaction, so the client can reconcile any optimistic update with the
authoritative values.

Endpoints:
  GET    /groups/:id/tasks                  → 200  caller's own tasks
  POST   /groups/:id/tasks                  → 201  bulk create
  POST   /groups/:id/tasks/suggest          → 201  AI suggestions, then bulk create
  GET    /groups/:id/members/:uid/tasks     → 200  a member's tasks (members only)
  POST   /tasks/:id/toggle                  → 200  flip completion (owner only)
"""

from __future__ import annotations

import functools

from flask import Blueprint, current_app, g, jsonify, request

from creaturecrew.app.extensions import db
from creaturecrew.app.middleware.auth_middleware import require_auth
from creaturecrew.app.models.task import Task
from creaturecrew.app.schemas.task_schema import BulkCreateTasksSchema, SuggestTasksSchema
from creaturecrew.app.services import suggestion_service, task_service

tasks_bp = Blueprint("tasks", __name__)


def _serialize_task(task: Task) -> dict:
    return {
        "id": task.id,
        "group_id": task.group_id,
        "user_id": task.user_id,
        "description": task.description,
        "completed": task.completed,
        "created_at": task.created_at.isoformat(),
    }


def _serialize_created(tasks: list[Task]) -> dict:
    return {
        "tasks": [_serialize_task(t) for t in tasks],
        "creature_mood": tasks[0].group.creature_mood if tasks else None,
    }


def _configured_suggester():
    """Binds the suggestion client to this app's Gemini settings."""
    config = current_app.config
    return functools.partial(
        suggestion_service.suggest_tasks,
        api_key=config["GEMINI_API_KEY"],
        model=config["GEMINI_MODEL"],
        base_url=config["GEMINI_BASE_URL"],
        timeout=config["SUGGESTION_TIMEOUT_SECONDS"],
        max_tasks=config["SUGGESTION_MAX_TASKS"],
    )


# ── Group-scoped task routes ───────────────────────────────────────────────

@tasks_bp.route("/groups/<int:group_id>/tasks", methods=["GET"])
@require_auth
def list_my_tasks(group_id: int):
    """GET /groups/:id/tasks — The caller's tasks in creation order."""
    tasks = task_service.list_for_user_in_group(
        group_id=group_id,
        user_id=g.user_id,
        session=db.session,
        caller_id=g.user_id,
    )
    return jsonify({"data": [_serialize_task(t) for t in tasks], "warnings": []}), 200


@tasks_bp.route("/groups/<int:group_id>/tasks", methods=["POST"])
@require_auth
def bulk_create_tasks(group_id: int):
    """POST /groups/:id/tasks — Add tasks for the caller."""
    data = BulkCreateTasksSchema().load(request.get_json(force=True, silent=True) or {})
    tasks = task_service.bulk_create(
        group_id=group_id,
        user_id=g.user_id,
        descriptions=data["descriptions"],
        session=db.session,
    )
    result = _serialize_created(tasks)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@tasks_bp.route("/groups/<int:group_id>/tasks/suggest", methods=["POST"])
@require_auth
def suggest_tasks(group_id: int):
    """POST /groups/:id/tasks/suggest — Generate tasks from a prompt and store them."""
    data = SuggestTasksSchema().load(request.get_json(force=True, silent=True) or {})
    tasks = task_service.create_suggested_tasks(
        group_id=group_id,
        user_id=g.user_id,
        prompt=data["prompt"],
        suggest=_configured_suggester(),
        session=db.session,
    )
    result = _serialize_created(tasks)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@tasks_bp.route("/groups/<int:group_id>/members/<int:member_id>/tasks", methods=["GET"])
@require_auth
def list_member_tasks(group_id: int, member_id: int):
    """GET /groups/:id/members/:uid/tasks — Another member's tasks. Members only."""
    tasks = task_service.list_for_user_in_group(
        group_id=group_id,
        user_id=member_id,
        session=db.session,
        caller_id=g.user_id,
    )
    return jsonify({"data": [_serialize_task(t) for t in tasks], "warnings": []}), 200


# ── Task-id routes ─────────────────────────────────────────────────────────

@tasks_bp.route("/tasks/<int:task_id>/toggle", methods=["POST"])
@require_auth
def toggle_task(task_id: int):
    """POST /tasks/:id/toggle — Flip completion. Owner only."""
    task = task_service.toggle(
        task_id=task_id,
        requesting_user_id=g.user_id,
        session=db.session,
    )
    result = {
        "task": _serialize_task(task),
        "creature_mood": task.group.creature_mood,
    }
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
