"""
Shared pytest fixtures for the Whisk client tests.

``FakeTransport`` stands in for :func:`src.whisk_client.executor.execute`.
Responses are queued per endpoint (matched by URL prefix) and every call is
recorded so tests can assert on what was, or was not, sent.
"""

from __future__ import annotations

import json

import pytest

from src.whisk_client.config import ENDPOINTS
from src.whisk_client.models import Credentials
from src.whisk_client.result import ErrorCategory, Success, err, ok
from src.whisk_client.client import WhiskClient


# ---------------------------------------------------------------------------
# Canned response bodies
# ---------------------------------------------------------------------------

def trpc(result) -> str:
    """Wrap ``result`` in the result.data.json.result envelope."""
    return json.dumps({"result": {"data": {"json": {"result": result}}}})


SESSION_OK = json.dumps({"access_token": "tok123", "expires": "2026-10-19T00:00:00Z"})
GENERATION_OK = json.dumps({
    "imagePanels": [
        {"generatedImages": [{"encodedImage": "aGVsbG8=", "seed": 0, "mediaGenerationId": "m1"}]}
    ]
})
SERVICE_ERROR = json.dumps({"error": {"code": 403, "message": "forbidden"}})


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

class FakeTransport:
    """Scripted transport that records every call."""

    def __init__(self):
        self.calls: list[dict] = []
        self._responses: dict[str, list] = {}

    def queue(self, endpoint: str, response) -> "FakeTransport":
        """
        Queue one response for ``ENDPOINTS[endpoint]``.

        ``response`` may be a raw body string (wrapped in Success) or a
        ready-made Result.
        """
        if isinstance(response, str):
            response = ok(response)
        self._responses.setdefault(ENDPOINTS[endpoint], []).append(response)
        return self

    def __call__(self, method, url, headers, body=None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers), "body": body})
        for prefix, queued in self._responses.items():
            if (url == prefix or url.startswith(prefix + "?")) and queued:
                return queued.pop(0)
        return err(ErrorCategory.TRANSPORT, f"no response queued for {method} {url}")

    def calls_to(self, endpoint: str) -> list[dict]:
        prefix = ENDPOINTS[endpoint]
        return [c for c in self.calls if c["url"] == prefix or c["url"].startswith(prefix + "?")]

    def json_body(self, endpoint: str, index: int = 0) -> dict:
        return json.loads(self.calls_to(endpoint)[index]["body"])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    """Client with a cookie only; the bearer token is derived on demand."""
    return WhiskClient(Credentials(cookie="abc"), transport=transport)


@pytest.fixture
def authorized_client(transport):
    """Client whose bearer token is already known."""
    return WhiskClient(Credentials(cookie="abc", authorization_key="tok123"), transport=transport)


def assert_success(result):
    assert isinstance(result, Success), f"expected Success, got {result!r}"
    return result.value
