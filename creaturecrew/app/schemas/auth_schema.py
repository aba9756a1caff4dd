"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Field shape only. Uniqueness of username and email needs a DB lookup and is
checked in services/auth_service.py.

All schemas inherit from marshmallow.Schema so they load without a Flask
application context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates


class RegisterSchema(Schema):
    """
    POST /auth/register

      username : 3–50 chars, letters, digits and underscore; shown to the
                 rest of the group as the member's name
      email    : valid email address
      password : at least 8 chars with a letter and a digit
    """

    username = fields.String(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=50,
                error="Username must be between 3 and 50 characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username may only contain letters, numbers, and underscores.",
            ),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")


class LoginSchema(Schema):
    """POST /auth/login — credential correctness is the service's job."""

    username = fields.String(required=True)
    password = fields.String(required=True, load_only=True)


class RefreshTokenSchema(Schema):
    """POST /auth/refresh and /auth/logout."""

    refresh_token = fields.String(required=True)
