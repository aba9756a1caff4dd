"""
routes/groups.py — Group and membership route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.
  - The _serialize_* helpers only reshape data.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                 → 201  create group (caller becomes founder)
  GET    /groups/me              → 200  caller's group, or null
  POST   /groups/join            → 201  join by invite code
  GET    /groups/:id             → 200  group details (members only)
  GET    /groups/:id/members     → 200  member list, founder first (members only)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from creaturecrew.app.extensions import db
from creaturecrew.app.middleware.auth_middleware import require_auth
from creaturecrew.app.models.group import Group
from creaturecrew.app.models.membership import Membership
from creaturecrew.app.schemas.group_schema import CreateGroupSchema, JoinGroupSchema
from creaturecrew.app.services import group_service, membership_service

groups_bp = Blueprint("groups", __name__)


def _serialize_group(group: Group) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "invite_code": group.invite_code,
        "creature_mood": group.creature_mood,
        "founder_user_id": group.founder_user_id,
        "created_at": group.created_at.isoformat(),
    }


def _serialize_member(membership: Membership) -> dict:
    return {
        "user_id": membership.user_id,
        "username": membership.user.username,
        "joined_at": membership.joined_at.isoformat(),
    }


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a group. Caller becomes founder and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True, silent=True) or {})
    group = group_service.create_group(
        name=data["name"],
        founder_id=g.user_id,
        session=db.session,
        invite_code_length=current_app.config["INVITE_CODE_LENGTH"],
        max_attempts=current_app.config["INVITE_CODE_MAX_ATTEMPTS"],
    )
    result = _serialize_group(group)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/me", methods=["GET"])
@require_auth
def my_group():
    """GET /groups/me — The caller's current group; data is null if none."""
    group = group_service.get_group_by_user(
        user_id=g.user_id,
        session=db.session,
    )
    result = _serialize_group(group) if group is not None else None
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/join", methods=["POST"])
@require_auth
def join_group():
    """POST /groups/join — Join the group that holds the given invite code."""
    data = JoinGroupSchema().load(request.get_json(force=True, silent=True) or {})
    group = membership_service.join_by_code(
        code=data["code"],
        user_id=g.user_id,
        session=db.session,
    )
    result = _serialize_group(group)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    """GET /groups/:id — Group details, including current creature mood."""
    group = group_service.get_group(
        group_id=group_id,
        session=db.session,
        caller_id=g.user_id,
    )
    return jsonify({"data": _serialize_group(group), "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members", methods=["GET"])
@require_auth
def list_members(group_id: int):
    """GET /groups/:id/members — Members in join order, founder first."""
    members = membership_service.list_members(
        group_id=group_id,
        session=db.session,
        caller_id=g.user_id,
    )
    result = [_serialize_member(m) for m in members]
    return jsonify({"data": result, "warnings": []}), 200
