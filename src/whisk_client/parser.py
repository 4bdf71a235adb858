"""
Response decoding, service-error detection, and envelope field extraction.

No I/O occurs here; all functions are pure transformations of strings/dicts
to support easy unit testing.  Every JSON decode in the package goes through
:func:`decode_json`, so a malformed body always becomes a ``decode`` failure
carrying the raw text.

Responses are checked permissively: only the presence (and, where callers
depend on it, the type) of the expected field is validated.
"""

from __future__ import annotations

import json
from typing import Any

from .result import ErrorCategory, Result, Success, err, ok

# tRPC responses wrap the payload as result.data.json.result.<field>
TRPC_ENVELOPE: tuple[str, ...] = ("result", "data", "json", "result")


def decode_json(text: str) -> Result:
    """
    Parse raw response text as JSON.

    Args:
        text: Raw response body from the transport.

    Returns:
        ``Success(payload)`` or a ``decode`` ``Failure`` quoting ``text``.
    """
    try:
        return ok(json.loads(text))
    except (json.JSONDecodeError, TypeError):
        return err(ErrorCategory.DECODE, f"Failed to parse response: {text}")


def has_service_error(payload: Any) -> bool:
    """Return ``True`` if the payload carries a truthy top-level ``error`` field."""
    return isinstance(payload, dict) and bool(payload.get("error"))


def get_path(payload: Any, path: tuple[str, ...]) -> Any:
    """
    Walk nested dicts along ``path``.

    Returns:
        The value at the end of the path, or ``None`` if any step is missing
        or not a dict.
    """
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def decode_response(text: str, action: str) -> Result:
    """
    Decode ``text`` and reject payloads that report a service error.

    Args:
        text: Raw response body.
        action: Verb phrase for messages, e.g. ``'generate image'``.

    Returns:
        ``Success(payload)``; a ``decode`` failure for invalid JSON; a
        ``remote_service`` failure (with the raw body) when an ``error``
        field is present, regardless of other fields.
    """
    decoded = decode_json(text)
    if not isinstance(decoded, Success):
        return decoded

    if has_service_error(decoded.value):
        return err(ErrorCategory.REMOTE_SERVICE, f"Failed to {action}: {text}")

    return decoded


def extract_field(
    text: str,
    path: tuple[str, ...],
    action: str,
    expected_type: type | tuple[type, ...] | None = None,
) -> Result:
    """
    Decode ``text`` and return the value at ``path``.

    Args:
        text: Raw response body.
        path: Key path into the decoded payload.
        action: Verb phrase naming the operation, used in error messages.
        expected_type: If given, the value must be an instance of it.

    Returns:
        ``Success(value)``, or a ``decode`` failure naming ``action`` and
        quoting the raw body when the path is missing, empty, or mistyped.
        Service errors and invalid JSON fail as in :func:`decode_response`.
    """
    decoded = decode_response(text, action)
    if not isinstance(decoded, Success):
        return decoded

    value = get_path(decoded.value, path)
    missing = value is None or value == "" or value == {}
    if missing or (expected_type is not None and not isinstance(value, expected_type)):
        return err(ErrorCategory.DECODE, f"Failed to {action}: {text}")

    return ok(value)
