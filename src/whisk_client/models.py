"""
Request data types and default filling.

Defaults are filled by the operation, never by the caller, and always on a
copy: the caller's object is left untouched.  ``seed`` is tested with
``is None`` because zero is a valid seed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from .config import (
    AUTHORIZATION_KEY_ENV,
    COOKIE_ENV,
    DEFAULT_ASPECT_RATIO,
    DEFAULT_CANDIDATE_COUNT,
    DEFAULT_IMAGE_MODEL,
    DEFAULT_SEED,
)


@dataclass(frozen=True)
class Credentials:
    """
    Session cookie plus an optional, already-derived authorization token.

    Args:
        cookie: Raw ``Cookie`` header value copied from a logged-in browser.
        authorization_key: Bearer token, if the caller already has one.
    """

    cookie: str
    authorization_key: str | None = None

    @classmethod
    def from_env(cls) -> "Credentials":
        """
        Read credentials from ``WHISK_COOKIE`` / ``WHISK_AUTHORIZATION_KEY``.

        Missing variables yield empty values; the client rejects an empty
        cookie at construction.
        """
        return cls(
            cookie=os.getenv(COOKIE_ENV, ""),
            authorization_key=os.getenv(AUTHORIZATION_KEY_ENV) or None,
        )


@dataclass
class Prompt:
    """Plain text-to-image request."""

    prompt: str
    project_id: str | None = None
    seed: int | None = None
    image_model: str | None = None
    aspect_ratio: str | None = None


@dataclass
class RefinementRequest:
    """
    Edit of an existing image with a new free-text instruction.

    Args:
        existing_prompt: Prompt (or description) the image was generated from.
        new_refinement: The instruction describing the change.
        image_id: Media key of the image being refined.
        base64_image: Encoded bytes of that image.
        project_id: Workflow the refined image is generated into.
        count: Number of candidates to generate.
    """

    existing_prompt: str
    new_refinement: str
    image_id: str
    base64_image: str
    project_id: str
    seed: int | None = None
    aspect_ratio: str | None = None
    image_model: str | None = None
    count: int | None = None


def with_prompt_defaults(prompt: Prompt, project_id: str | None = None) -> Prompt:
    """
    Return a copy of ``prompt`` with every optional generation field filled.

    Args:
        prompt: Caller's prompt (not mutated).
        project_id: Freshly created project id to use when the prompt has none.
    """
    return replace(
        prompt,
        project_id=prompt.project_id or project_id,
        seed=DEFAULT_SEED if prompt.seed is None else prompt.seed,
        image_model=prompt.image_model or DEFAULT_IMAGE_MODEL,
        aspect_ratio=prompt.aspect_ratio or DEFAULT_ASPECT_RATIO,
    )


def with_refinement_defaults(request: RefinementRequest) -> RefinementRequest:
    """Return a copy of ``request`` with seed, ratio, model and count filled."""
    return replace(
        request,
        seed=DEFAULT_SEED if request.seed is None else request.seed,
        aspect_ratio=request.aspect_ratio or DEFAULT_ASPECT_RATIO,
        image_model=request.image_model or DEFAULT_IMAGE_MODEL,
        # count of 0 also falls back
        count=request.count or DEFAULT_CANDIDATE_COUNT,
    )
