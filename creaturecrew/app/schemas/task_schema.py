"""
schemas/task_schema.py — Marshmallow schemas for task endpoints.

Ownership and membership are service concerns (FORBIDDEN, 403). These
schemas only check shape.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate

MAX_BULK_TASKS = 50
MAX_DESCRIPTION_LENGTH = 500
MAX_PROMPT_LENGTH = 2000


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class BulkCreateTasksSchema(Schema):
    """
    POST /groups/:id/tasks

    descriptions — list of task texts, stored verbatim and in order. An empty
    list is allowed and creates nothing.
    """

    descriptions = fields.List(
        fields.String(
            validate=[
                validate.Length(
                    max=MAX_DESCRIPTION_LENGTH,
                    error=f"Task description must be at most {MAX_DESCRIPTION_LENGTH} characters.",
                ),
                _validate_non_empty_after_trim,
            ],
        ),
        required=True,
        validate=validate.Length(
            max=MAX_BULK_TASKS,
            error=f"At most {MAX_BULK_TASKS} tasks can be added at once.",
        ),
    )


class SuggestTasksSchema(Schema):
    """
    POST /groups/:id/tasks/suggest

    prompt — what is on the member's mind; sent to the suggestion generator.
    """

    prompt = fields.String(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=MAX_PROMPT_LENGTH,
                error=f"Prompt must be between 1 and {MAX_PROMPT_LENGTH} characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
