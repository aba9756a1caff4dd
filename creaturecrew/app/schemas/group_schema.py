"""
schemas/group_schema.py — Marshmallow schemas for group endpoints.

Validation split:
  - This file: field types, lengths, blank-after-trim checks, code shape.
  - services/group_service.py and membership_service.py: anything needing the
    database (ALREADY_IN_GROUP, INVALID_INVITE_CODE, GROUP_NOT_FOUND).

Inherits from marshmallow.Schema directly so schemas load without an app
context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validate

MAX_INVITE_CODE_INPUT_LENGTH = 32


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Rejects blank or whitespace-only strings. validate.Length(min=1) alone
    would accept "   ".
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _validate_code_length(value: str) -> None:
    # Padding is stripped before lookup, so only the code itself is measured.
    if len(value.strip()) > MAX_INVITE_CODE_INPUT_LENGTH:
        raise ValidationError("Invite code is too long.")


class CreateGroupSchema(Schema):
    """
    POST /groups

    name — non-empty after trim, max 100 chars. Returned trimmed.
    """

    name = fields.String(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    @post_load
    def strip_name(self, data: dict, **kwargs) -> dict:
        data["name"] = data["name"].strip()
        return data


class JoinGroupSchema(Schema):
    """
    POST /groups/join

    code — the invite code as typed. Case and surrounding whitespace are
    ignored; whether a group holds it is decided by membership_service.
    """

    code = fields.String(
        required=True,
        validate=[
            _validate_non_empty_after_trim,
            _validate_code_length,
        ],
    )
