"""
Request construction and the HTTP transport function.

The transport has a single contract shared by every operation::

    execute(method, url, headers, body=None) -> Result[str]

On success the value is the raw response text; decoding happens in
:mod:`parser`.  Any ``requests`` exception, and any error status, becomes a
``transport`` failure so that no network fault escapes as an exception.  The
one exception is an error status whose body reports a service ``error``
field: that body is passed through for :mod:`parser` to classify.

Design notes:
- Cookie and bearer headers are built by separate functions; the two auth
  modes are not interchangeable and each endpoint uses exactly one.
- Bodies are serialized with compact separators to match what the web
  frontend sends.
"""

from __future__ import annotations

import json
from typing import Callable, Mapping, Optional
from urllib.parse import urlencode

import requests

from .config import AVAILABILITY_API_KEY, REQUEST_TIMEOUT_SECONDS
from .parser import decode_json, has_service_error
from .result import ErrorCategory, Result, Success, err, ok

# Signature of the transport collaborator; tests substitute their own.
Transport = Callable[[str, str, Mapping[str, str], Optional[str]], Result]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_json(payload: dict | list) -> str:
    """Serialize a request body the way the web frontend does (no spaces)."""
    return json.dumps(payload, separators=(",", ":"))


def build_query_url(endpoint: str, payload: dict) -> str:
    """
    Append a JSON-encoded ``input`` query parameter to a tRPC GET endpoint.

    Args:
        endpoint: Base endpoint URL from ``ENDPOINTS``.
        payload: Filter object sent as ``?input=<json>``.

    Returns:
        Full URL with the payload percent-encoded.
    """
    return f"{endpoint}?{urlencode({'input': to_json(payload)})}"


# ---------------------------------------------------------------------------
# Header construction
# ---------------------------------------------------------------------------

def build_cookie_headers(cookie: str, content_type: str | None = "application/json") -> dict:
    """
    Headers for endpoints that authenticate with the session cookie.

    Args:
        cookie: Session cookie string.
        content_type: ``Content-Type`` value, or ``None`` to omit it.
    """
    headers = {"Cookie": cookie}
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def build_bearer_headers(
    authorization_key: str,
    content_type: str = "application/json",
) -> dict:
    """Headers for endpoints that require the derived authorization token."""
    return {
        "Authorization": f"Bearer {authorization_key}",
        "Content-Type": content_type,
    }


def build_api_key_headers() -> dict:
    """Headers for the availability check, which takes a fixed public key."""
    return {
        "Content-Type": "text/plain;charset=UTF-8",
        "X-Goog-Api-Key": AVAILABILITY_API_KEY,
    }


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

def execute(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: str | None = None,
) -> Result:
    """
    Send one HTTP request and return the raw response text.

    No retry is attempted; timeouts are bounded by
    ``REQUEST_TIMEOUT_SECONDS``.

    Args:
        method: HTTP method (``'GET'`` or ``'POST'``).
        url: Full request URL.
        headers: Header name → value pairs.
        body: Already-serialized request body, or ``None``.

    Returns:
        ``Success(text)`` for a 2xx response or an error status carrying a
        service ``error`` body; otherwise a ``transport`` ``Failure`` quoting
        the exception, or the status code and body text.
    """
    try:
        response = requests.request(
            method,
            url,
            headers=dict(headers),
            data=body.encode("utf-8") if body is not None else None,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        return err(ErrorCategory.TRANSPORT, f"{method} {url} failed: {exc}")

    if response.ok:
        return ok(response.text)

    decoded = decode_json(response.text)
    if isinstance(decoded, Success) and has_service_error(decoded.value):
        return ok(response.text)

    return err(
        ErrorCategory.TRANSPORT,
        f"{method} {url} returned HTTP {response.status_code}: {response.text}",
    )
