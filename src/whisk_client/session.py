"""
Credential store and session bootstrapper.

A :class:`Session` owns one cloned :class:`~.models.Credentials`.  The cookie
never changes after construction.  The authorization token moves from absent
to present exactly once, and only :meth:`Session.ensure_authorized` writes
it; every other component reads it through a property.
"""

from __future__ import annotations

from .config import ENDPOINTS
from .executor import Transport, build_bearer_headers, build_cookie_headers, execute
from .models import Credentials
from .parser import extract_field
from .result import ErrorCategory, Result, Success, err, ok


class Session:
    """
    Cookie plus lazily derived bearer token for one client instance.

    Args:
        credentials: Caller's credentials; copied, so later changes to the
            caller's object have no effect here.
        transport: Transport function (defaults to :func:`executor.execute`).
    """

    def __init__(self, credentials: Credentials, transport: Transport = execute):
        self._cookie = str(credentials.cookie or "")
        self._authorization_key: str | None = credentials.authorization_key or None
        self._transport = transport

    @property
    def cookie(self) -> str:
        return self._cookie

    @property
    def authorization_key(self) -> str | None:
        return self._authorization_key

    @property
    def is_authorized(self) -> bool:
        return self._authorization_key is not None

    @property
    def transport(self) -> Transport:
        return self._transport

    def _store_authorization_key(self, token: str) -> None:
        if self.is_authorized:
            raise RuntimeError("Authorization token is already set for this session.")
        self._authorization_key = token

    # -----------------------------------------------------------------------
    # Headers
    # -----------------------------------------------------------------------

    def cookie_headers(self, content_type: str | None = "application/json") -> dict:
        return build_cookie_headers(self._cookie, content_type)

    def bearer_headers(self, content_type: str = "application/json") -> dict:
        """
        Bearer headers for the generation endpoints.

        Callers must have a successful :meth:`ensure_authorized` first.
        """
        return build_bearer_headers(str(self._authorization_key), content_type)

    # -----------------------------------------------------------------------
    # Bootstrap
    # -----------------------------------------------------------------------

    def get_authorization_token(self) -> Result:
        """
        Derive a bearer token from the session cookie.

        The token is returned, not stored; :meth:`ensure_authorized` is the
        only writer.

        Returns:
            ``Success(token)``; transport failures unchanged; ``decode``
            failure when the body is not JSON or lacks ``access_token``.
        """
        if not self._cookie:
            return err(ErrorCategory.PRECONDITION, "Empty or invalid cookie.")

        resp = self._transport(
            "GET", ENDPOINTS["session"], self.cookie_headers(content_type=None), None
        )
        if not isinstance(resp, Success):
            return resp

        token = extract_field(resp.value, ("access_token",), "get session token")
        if not isinstance(token, Success):
            return token

        return ok(str(token.value))

    def ensure_authorized(self) -> Result:
        """
        Make sure a bearer token is present, deriving it on first need.

        Idempotent: once the token is present no transport call is made.

        Returns:
            ``Success(token)``, or an ``auth`` failure when the cookie is
            missing or the token cannot be derived.
        """
        if self.is_authorized:
            return ok(self._authorization_key)

        if not self._cookie:
            return err(
                ErrorCategory.AUTH,
                "Credentials are not set. Please provide a valid cookie.",
            )

        token = self.get_authorization_token()
        if not isinstance(token, Success):
            return err(
                ErrorCategory.AUTH,
                f"Failed to get authorization token: {token.error.message}",
            )

        self._store_authorization_key(token.value)
        print("Authorization token acquired.")
        return ok(token.value)
