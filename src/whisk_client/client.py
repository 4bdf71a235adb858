"""
WhiskClient: every remote operation behind one credentialed instance.

Each operation follows the same template and returns a ``Result``:

1. validate arguments locally (``precondition`` failure, no network);
2. secure the auth the endpoint needs (cookie, or bearer via bootstrap);
3. serialize the JSON body or ``?input=`` query;
4. call the transport, returning its failure unchanged;
5. decode, reject a service-reported ``error`` field, extract the field.

Once a step fails, later steps are skipped and that first failure is what
the caller receives.
"""

from __future__ import annotations

import math
from pathlib import Path

from .config import (
    ASPECT_RATIOS,
    CREDIT_VIDEO_MODEL,
    DEFAULT_PROJECT_TITLE,
    DELETE_PARENT,
    ENDPOINTS,
    INVALID_COOKIE,
    MEDIA_CATEGORY,
    SESSION_IDS,
    TOOL_NAME,
)
from .executor import Transport, build_api_key_headers, build_query_url, execute, to_json
from .models import Credentials, Prompt, RefinementRequest, with_prompt_defaults
from .parser import TRPC_ENVELOPE, decode_response, extract_field, get_path
from .refinement import refine_image
from .result import ErrorCategory, PreconditionError, Result, Success, err, ok
from .session import Session
from .storage import save_image


def _history_query(subtype: str, limit_count: int) -> dict:
    """Filter object for ``media.fetchUserHistory``."""
    return {
        "json": {
            "rawQuery": "",
            "type": TOOL_NAME,
            "subtype": subtype,
            "limit": limit_count,
            "cursor": None,
        },
        "meta": {"values": {"cursor": ["undefined"]}},
    }


class WhiskClient:
    """
    Client for the Whisk image-generation service.

    Args:
        credentials: Session cookie (and optionally a bearer token).  Copied
            at construction.
        transport: Transport function; defaults to :func:`executor.execute`.

    Raises:
        PreconditionError: If the cookie is empty or the ``INVALID_COOKIE``
            placeholder.  Nothing is sent in that case.
    """

    def __init__(self, credentials: Credentials, transport: Transport | None = None):
        if not credentials.cookie or credentials.cookie == INVALID_COOKIE:
            raise PreconditionError("Cookie is missing or invalid.")

        self._session = Session(credentials, transport or execute)

    @property
    def session(self) -> Session:
        return self._session

    def _send(self, method: str, url: str, headers: dict, body: str | None = None) -> Result:
        return self._session.transport(method, url, headers, body)

    # -----------------------------------------------------------------------
    # Session
    # -----------------------------------------------------------------------

    def is_available(self) -> Result:
        """
        Check whether the service is available in the caller's region.

        Uses the fixed public API key, not the session credentials.

        Returns:
            ``Success(True)`` when ``availabilityState`` is ``AVAILABLE``,
            ``Success(False)`` for any other state.
        """
        resp = self._send(
            "POST", ENDPOINTS["check_availability"], build_api_key_headers(), "{}"
        )
        if not isinstance(resp, Success):
            return resp

        payload = decode_response(resp.value, "check availability")
        if not isinstance(payload, Success):
            return payload

        return ok(get_path(payload.value, ("availabilityState",)) == "AVAILABLE")

    def get_authorization_token(self) -> Result:
        """Derive a bearer token from the cookie without storing it."""
        return self._session.get_authorization_token()

    def ensure_authorized(self) -> Result:
        """Derive and store the bearer token if it is not present yet."""
        return self._session.ensure_authorized()

    def get_credit_status(self) -> Result:
        """
        Remaining video-generation credits (Veo, not Whisk).

        Returns:
            ``Success(number)`` with the ``credits`` value: an ``int`` when
            whole, otherwise a ``float`` (fractional credits are kept).
        """
        auth = self._session.ensure_authorized()
        if not isinstance(auth, Success):
            return auth

        body = to_json({"tool": TOOL_NAME, "videoModel": CREDIT_VIDEO_MODEL})
        resp = self._send(
            "POST", ENDPOINTS["credit_status"], self._session.bearer_headers(), body
        )
        if not isinstance(resp, Success):
            return resp

        raw_credits = extract_field(
            resp.value, ("credits",), "get credit status", (int, float, str)
        )
        if not isinstance(raw_credits, Success):
            return raw_credits

        if isinstance(raw_credits.value, int):
            return ok(raw_credits.value)

        try:
            credit_count = float(raw_credits.value)
        except (ValueError, OverflowError):
            return err(ErrorCategory.DECODE, f"Failed to get credit status: {resp.value}")
        if not math.isfinite(credit_count):
            return err(ErrorCategory.DECODE, f"Failed to get credit status: {resp.value}")

        return ok(int(credit_count) if credit_count.is_integer() else credit_count)

    # -----------------------------------------------------------------------
    # Projects
    # -----------------------------------------------------------------------

    def get_new_project_id(self, project_title: str) -> Result:
        """
        Create a project (workflow) and return its id.

        Args:
            project_title: Display name for the new project.
        """
        if not project_title:
            return err(ErrorCategory.PRECONDITION, "Project title is required.")

        body = to_json({
            "json": {
                "clientContext": {
                    "tool": TOOL_NAME,
                    "sessionId": SESSION_IDS["create_project"],
                },
                "workflowMetadata": {"workflowName": project_title},
            }
        })
        resp = self._send(
            "POST",
            ENDPOINTS["create_or_update_workflow"],
            self._session.cookie_headers(),
            body,
        )
        if not isinstance(resp, Success):
            return resp

        workflow_id = extract_field(
            resp.value, TRPC_ENVELOPE + ("workflowId",), "create new project"
        )
        if not isinstance(workflow_id, Success):
            return workflow_id

        print(f"Created project '{project_title}' ({workflow_id.value})")
        return ok(str(workflow_id.value))

    def get_project_history(self, limit_count: int) -> Result:
        """
        List the caller's projects, newest first.

        Args:
            limit_count: Maximum number of projects (must be positive).
        """
        return self._fetch_history("PROJECT", limit_count, "get project history")

    def get_image_history(self, limit_count: int) -> Result:
        """
        List the caller's generated images, newest first.

        Args:
            limit_count: Maximum number of images (must be positive).
        """
        return self._fetch_history("IMAGE", limit_count, "get image history")

    def _fetch_history(self, subtype: str, limit_count: int, action: str) -> Result:
        if isinstance(limit_count, bool) or not isinstance(limit_count, int) or limit_count <= 0:
            return err(ErrorCategory.PRECONDITION, "Limit count must be a positive integer.")

        url = build_query_url(
            ENDPOINTS["fetch_user_history"], _history_query(subtype, limit_count)
        )
        resp = self._send("GET", url, self._session.cookie_headers())
        if not isinstance(resp, Success):
            return resp

        return extract_field(resp.value, TRPC_ENVELOPE + ("userWorkflows",), action, list)

    def get_project_content(self, project_id: str) -> Result:
        """
        List the media stored in one project.

        Args:
            project_id: Workflow id of the project.
        """
        if not project_id:
            return err(
                ErrorCategory.PRECONDITION,
                "Project ID is required to fetch project content.",
            )

        url = build_query_url(
            ENDPOINTS["get_project_workflow"], {"json": {"workflowId": project_id}}
        )
        resp = self._send("GET", url, self._session.cookie_headers())
        if not isinstance(resp, Success):
            return resp

        return extract_field(
            resp.value, TRPC_ENVELOPE + ("media",), "get project content", list
        )

    def rename_project(self, new_name: str, project_id: str) -> Result:
        """
        Rename a project.

        Returns:
            ``Success(workflow_id)`` of the renamed project.
        """
        if not new_name or not project_id:
            return err(
                ErrorCategory.PRECONDITION,
                "Both a new name and a project ID are required to rename a project.",
            )

        body = to_json({
            "json": {
                "workflowId": project_id,
                "clientContext": {
                    "sessionId": SESSION_IDS["rename_project"],
                    "tool": TOOL_NAME,
                    "workflowId": project_id,
                },
                "workflowMetadata": {"workflowName": new_name},
            }
        })
        resp = self._send(
            "POST",
            ENDPOINTS["create_or_update_workflow"],
            self._session.cookie_headers(),
            body,
        )
        if not isinstance(resp, Success):
            return resp

        workflow_id = extract_field(
            resp.value, TRPC_ENVELOPE + ("workflowId",), "rename project"
        )
        if not isinstance(workflow_id, Success):
            return workflow_id

        return ok(str(workflow_id.value))

    def delete_projects(self, project_ids: list[str]) -> Result:
        """
        Delete one or more projects from the library.

        ``project_ids`` must be a sequence of ids; a bare string is refused
        rather than split into characters.

        Returns:
            ``Success(True)`` when the service reports no error.
        """
        if isinstance(project_ids, str) or not project_ids or not all(project_ids):
            return err(
                ErrorCategory.PRECONDITION,
                "At least one non-empty project ID is required to delete projects.",
            )

        body = to_json({"json": {"parent": DELETE_PARENT, "names": list(project_ids)}})
        resp = self._send(
            "POST", ENDPOINTS["delete_media"], self._session.cookie_headers(), body
        )
        if not isinstance(resp, Success):
            return resp

        payload = decode_response(resp.value, "delete media")
        if not isinstance(payload, Success):
            return payload

        return ok(True)

    # -----------------------------------------------------------------------
    # Media
    # -----------------------------------------------------------------------

    def get_media(self, media_key: str) -> Result:
        """
        Fetch one stored image by media key.

        Media keys come from ``get_image_history()`` entries (``name``).

        Returns:
            ``Success(dict)`` whose ``image.encodedImage`` holds base64 data.
        """
        if not media_key:
            return err(
                ErrorCategory.PRECONDITION,
                "Media key is required to fetch the image.",
            )

        url = build_query_url(ENDPOINTS["fetch_media"], {"json": {"mediaKey": media_key}})
        resp = self._send("GET", url, self._session.cookie_headers())
        if not isinstance(resp, Success):
            return resp

        return extract_field(resp.value, TRPC_ENVELOPE, "get media", dict)

    def generate_image(self, prompt: Prompt) -> Result:
        """
        Generate images from a text prompt.

        A project named ``DEFAULT_PROJECT_TITLE`` is created when the prompt
        has no ``project_id``; the caller's prompt object is not modified.

        Returns:
            ``Success(payload)`` with the decoded generation response.
        """
        if prompt is None or not prompt.prompt:
            return err(
                ErrorCategory.PRECONDITION,
                "Invalid prompt. Please provide a non-empty prompt text.",
            )
        if prompt.aspect_ratio is not None and prompt.aspect_ratio not in ASPECT_RATIOS:
            return err(
                ErrorCategory.PRECONDITION,
                f"Unsupported aspect ratio: {prompt.aspect_ratio}",
            )

        auth = self._session.ensure_authorized()
        if not isinstance(auth, Success):
            return auth

        new_project_id = None
        if not prompt.project_id:
            created = self.get_new_project_id(DEFAULT_PROJECT_TITLE)
            if not isinstance(created, Success):
                return created
            new_project_id = created.value

        filled = with_prompt_defaults(prompt, project_id=new_project_id)
        body = to_json({
            "clientContext": {
                "workflowId": filled.project_id,
                "tool": TOOL_NAME,
                "sessionId": SESSION_IDS["generate_image"],
            },
            "imageModelSettings": {
                "imageModel": filled.image_model,
                "aspectRatio": filled.aspect_ratio,
            },
            "seed": filled.seed,
            "prompt": filled.prompt,
            "mediaCategory": MEDIA_CATEGORY,
        })
        resp = self._send(
            "POST", ENDPOINTS["generate_image"], self._session.bearer_headers(), body
        )
        if not isinstance(resp, Success):
            return resp

        return decode_response(resp.value, "generate image")

    def refine_image(self, request: RefinementRequest) -> Result:
        """Edit an existing image; see :func:`refinement.refine_image`."""
        return refine_image(self._session, request)

    # -----------------------------------------------------------------------
    # Local files
    # -----------------------------------------------------------------------

    def save_image(self, image: str, file_name: str | Path) -> Result:
        """Write a base64 encoded image to ``file_name``."""
        return save_image(image, file_name)

    def save_image_direct(self, media_key: str, file_name: str | Path) -> Result:
        """
        Fetch an image by media key and write it to ``file_name``.

        Returns:
            ``Success(Path)`` of the written file; a ``get_media`` failure is
            returned unchanged.
        """
        media = self.get_media(media_key)
        if not isinstance(media, Success):
            return media

        encoded = get_path(media.value, ("image", "encodedImage"))
        if not isinstance(encoded, str) or not encoded:
            return err(
                ErrorCategory.DECODE,
                f"Fetched media '{media_key}' has no encoded image.",
            )

        return save_image(encoded, file_name)
