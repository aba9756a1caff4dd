"""
services/suggestion_service.py — AI task suggestions via the Gemini REST API.

The rest of the app treats suggestion as an opaque capability:

    suggest(prompt) -> list[str]

This module is the concrete adapter. It sends one generateContent request and
expects the model to answer with a JSON array of short task strings. Anything
else (network failure, non-2xx status, unparsable or wrongly shaped body) is
reported as DEPENDENCY_ERROR; nothing is silently replaced with defaults.

Returned strings are passed on verbatim. The only shaping is dropping the
list down to `max_tasks` items.

The user's prompt is never logged.
"""

from __future__ import annotations

import json
import logging

import httpx

from creaturecrew.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"

_INSTRUCTIONS = (
    "You help a person turn what is on their mind into a short list of small, "
    "concrete tasks they can finish today. Reply with ONLY a JSON array of "
    "{max_tasks} or fewer strings, each a single task under 80 characters. "
    "No numbering, no commentary.\n\nWhat is on their mind:\n{prompt}"
)


def _dependency_error(message: str) -> AppError:
    return AppError(ErrorCode.DEPENDENCY_ERROR, message, 502)


def build_request_body(prompt: str, max_tasks: int) -> dict:
    """Returns the generateContent payload for a user prompt."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": _INSTRUCTIONS.format(max_tasks=max_tasks, prompt=prompt)}],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "temperature": 0.7,
        },
    }


def _strip_code_fence(text: str) -> str:
    """Removes a surrounding ```json ... ``` fence if the model added one."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def parse_suggestions(payload: dict, max_tasks: int) -> list[str]:
    """
    Extracts the task list from a generateContent response body.

    Raises:
      AppError(DEPENDENCY_ERROR, 502) — the body does not hold a JSON array
        of non-empty strings.
    """
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise _dependency_error("The suggestion service returned no candidates.")

    try:
        items = json.loads(_strip_code_fence(text))
    except (TypeError, ValueError):
        raise _dependency_error("The suggestion service returned text that is not JSON.")

    if not isinstance(items, list) or not items:
        raise _dependency_error("The suggestion service did not return a list of tasks.")

    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise _dependency_error("The suggestion service returned an empty or non-text task.")

    return items[:max_tasks]


def suggest_tasks(
        prompt: str,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        max_tasks: int = 5,
        client: httpx.Client | None = None,
) -> list[str]:
    """
    Turns a free-text prompt into a list of task descriptions.

    Raises:
      AppError(INVALID_FIELD, 400)     — blank prompt
      AppError(DEPENDENCY_ERROR, 502)  — no API key configured, transport
                                         failure, error status or bad body
    """
    if not prompt or not prompt.strip():
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "Prompt must not be blank.",
            400,
            field="prompt",
        )
    if not api_key:
        logger.error("GEMINI_API_KEY is not configured; task suggestions are unavailable.")
        raise _dependency_error("Task suggestions are not configured on this server.")

    url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
    body = build_request_body(prompt.strip(), max_tasks)
    headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        response = http.post(url, json=body, headers=headers)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(
            "Suggestion service returned HTTP %s for model %s.",
            e.response.status_code,
            model,
        )
        raise _dependency_error(
            f"The suggestion service failed with HTTP {e.response.status_code}."
        )
    except httpx.HTTPError as e:
        logger.error("Suggestion service unreachable: %s", e)
        raise _dependency_error("The suggestion service could not be reached.")
    except ValueError:
        logger.error("Suggestion service returned a non-JSON body.")
        raise _dependency_error("The suggestion service returned an unreadable response.")
    finally:
        if owns_client:
            http.close()

    suggestions = parse_suggestions(payload, max_tasks)
    logger.info("Suggestion service returned %d task(s).", len(suggestions))
    return suggestions
