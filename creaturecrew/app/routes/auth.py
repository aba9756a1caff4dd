"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - AppError propagates to the global handler in app/__init__.py.

Endpoints (url_prefix=/api/v1/auth):
  POST   /auth/register  → 201
  POST   /auth/login     → 200
  POST   /auth/refresh   → 200
  POST   /auth/logout    → 200
  GET    /auth/me        → 200  profile with current group_id
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from creaturecrew.app.extensions import db
from creaturecrew.app.middleware.auth_middleware import require_auth
from creaturecrew.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema
from creaturecrew.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


def _body() -> dict:
    return request.get_json(force=True, silent=True) or {}


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create account; return tokens."""
    data = RegisterSchema().load(_body())
    result = auth_service.register_user(
        username=data["username"],
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return tokens."""
    data = LoginSchema().load(_body())
    result = auth_service.login_user(
        username=data["username"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Exchange a refresh token for a new access token."""
    data = RefreshTokenSchema().load(_body())
    result = auth_service.refresh_access_token(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /auth/logout — Revoke a refresh token."""
    data = RefreshTokenSchema().load(_body())
    auth_service.logout_user(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Logged out successfully."}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Current user profile."""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
