"""
Two-phase image refinement.

The service cannot regenerate an edited image straight from a free-text
instruction.  Refinement is therefore two dependent round-trips:

1. **Rewrite** (cookie auth): send the existing prompt, the new instruction
   and the image itself to ``backbone.generateRewrittenPrompt``.  The
   service answers with one composite prompt describing the edited image.
2. **Generate** (bearer auth): send that composite prompt, and only that
   prompt, to ``runBackboneImageGeneration``.

:func:`refine_image` owns the sequencing: the generate phase is built and
sent only after the rewrite phase has succeeded, and the first failure from
either phase is returned as-is.
"""

from __future__ import annotations

from .config import (
    ASPECT_RATIOS,
    EDITING_IMAGE_OBJECT_URL,
    ENDPOINTS,
    MEDIA_CATEGORY,
    SESSION_IDS,
    TOOL_NAME,
)
from .executor import to_json
from .models import RefinementRequest, with_refinement_defaults
from .parser import decode_response, extract_field
from .result import ErrorCategory, Result, Success, err
from .session import Session

# Phase A answers with the rewritten prompt directly under result.data.json
REWRITTEN_PROMPT_PATH: tuple[str, ...] = ("result", "data", "json")


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

def build_rewrite_payload(request: RefinementRequest) -> dict:
    """
    Body for the rewrite phase: the image being edited plus the instruction.

    Args:
        request: Refinement request with defaults already applied.
    """
    return {
        "json": {
            "existingPrompt": request.existing_prompt,
            "textInput": request.new_refinement,
            "editingImage": {
                "imageId": request.image_id,
                "base64Image": request.base64_image,
                "category": "STORYBOARD",
                "prompt": request.existing_prompt,
                "mediaKey": request.image_id,
                "isLoading": False,
                "isFavorite": None,
                "isActive": True,
                "isPreset": False,
                "isSelected": False,
                "index": 0,
                "imageObjectUrl": EDITING_IMAGE_OBJECT_URL,
                "recipeInput": {
                    "mediaInputs": [],
                    "userInput": {"userInstructions": request.existing_prompt},
                },
                "currentImageAction": "REFINING",
                "seed": request.seed,
            },
            "sessionId": SESSION_IDS["refine_image"],
        },
        "meta": {"values": {"editingImage.isFavorite": ["undefined"]}},
    }


def build_generation_payload(request: RefinementRequest, rewritten_prompt: str) -> dict:
    """
    Body for the generate phase.

    ``rewritten_prompt`` replaces the caller's instruction everywhere a
    prompt appears.
    """
    return {
        "userInput": {
            "candidatesCount": request.count,
            "seed": request.seed,
            "prompts": [rewritten_prompt],
            "mediaCategory": MEDIA_CATEGORY,
            "recipeInput": {
                "userInput": {"userInstructions": rewritten_prompt},
                "mediaInputs": [],
            },
        },
        "clientContext": {
            "sessionId": SESSION_IDS["refine_image"],
            "tool": TOOL_NAME,
            "workflowId": request.project_id,
        },
        "modelInput": {"modelNameType": request.image_model},
        "aspectRatio": request.aspect_ratio,
    }


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------

def rewrite_prompt(session: Session, request: RefinementRequest) -> Result:
    """
    Phase A: ask the service for a composite prompt describing the edit.

    Returns:
        ``Success(str)`` with the rewritten prompt; transport failures
        unchanged; ``remote_service`` / ``decode`` failures otherwise.
    """
    resp = session.transport(
        "POST",
        ENDPOINTS["rewrite_prompt"],
        session.cookie_headers(),
        to_json(build_rewrite_payload(request)),
    )
    if not isinstance(resp, Success):
        return resp

    return extract_field(resp.value, REWRITTEN_PROMPT_PATH, "rewrite prompt", str)


def generate_from_rewrite(
    session: Session,
    request: RefinementRequest,
    rewritten_prompt: str,
) -> Result:
    """
    Phase B: generate images from the rewritten prompt.

    The session must already be authorized.
    """
    resp = session.transport(
        "POST",
        ENDPOINTS["refine_image"],
        session.bearer_headers(content_type="text/plain;charset=UTF-8"),
        to_json(build_generation_payload(request, rewritten_prompt)),
    )
    if not isinstance(resp, Success):
        return resp

    return decode_response(resp.value, "generate refined image")


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def refine_image(session: Session, request: RefinementRequest) -> Result:
    """
    Refine an existing image with a new instruction.

    Steps, each terminal on failure:
      1. validate the request and fill defaults (seed 0, landscape,
         ``IMAGEN_3_5``, one candidate);
      2. ensure the bearer token needed by phase B;
      3. phase A, :func:`rewrite_prompt`;
      4. phase B, :func:`generate_from_rewrite`.

    Args:
        session: Authorized (or authorizable) session of the calling client.
        request: Caller's request (not mutated).

    Returns:
        ``Success(payload)`` with the generation response, or the first
        failure encountered.
    """
    if request is None or not request.new_refinement:
        return err(ErrorCategory.PRECONDITION, "Refinement instruction is required.")
    if not request.image_id or not request.base64_image:
        return err(
            ErrorCategory.PRECONDITION,
            "Image ID and base64 image are required to refine an image.",
        )
    if not request.project_id:
        return err(ErrorCategory.PRECONDITION, "Project ID is required to refine an image.")
    if request.aspect_ratio is not None and request.aspect_ratio not in ASPECT_RATIOS:
        return err(
            ErrorCategory.PRECONDITION,
            f"Unsupported aspect ratio: {request.aspect_ratio}",
        )

    filled = with_refinement_defaults(request)

    auth = session.ensure_authorized()
    if not isinstance(auth, Success):
        return auth

    rewritten = rewrite_prompt(session, filled)
    if not isinstance(rewritten, Success):
        return rewritten

    return generate_from_rewrite(session, filled, rewritten.value)
