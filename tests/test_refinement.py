"""
Unit tests for src/whisk_client/refinement.py.

Covers the two-phase protocol: the rewritten prompt from phase A is the only
prompt sent in phase B, each phase uses its own auth mode, and any failure
before or during phase A means the generation endpoint is never called.
"""

from __future__ import annotations

import json

import pytest

from src.whisk_client.models import RefinementRequest
from src.whisk_client.refinement import build_generation_payload, build_rewrite_payload
from src.whisk_client.result import ErrorCategory, Failure, Success, err

from .conftest import SESSION_OK

REWRITE_OK = json.dumps({"result": {"data": {"json": "a cat on a roof"}}})
IMAGES_OK = json.dumps({"images": [{"encodedImage": "aGVsbG8=", "seed": 0}]})


def _request(**overrides) -> RefinementRequest:
    fields = {
        "existing_prompt": "a cat",
        "new_refinement": "put it on a roof",
        "image_id": "media-1",
        "base64_image": "aGVsbG8=",
        "project_id": "w1",
    }
    fields.update(overrides)
    return RefinementRequest(**fields)


# ---------------------------------------------------------------------------
# Class: successful refinement
# ---------------------------------------------------------------------------

class TestRefineSuccess:

    def test_returns_generation_payload(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        result = authorized_client.refine_image(_request())
        assert result == Success(json.loads(IMAGES_OK))

    def test_rewritten_prompt_replaces_instruction(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        authorized_client.refine_image(_request())
        body = transport.json_body("refine_image")
        assert body["userInput"]["prompts"] == ["a cat on a roof"]
        assert body["userInput"]["recipeInput"]["userInput"]["userInstructions"] == "a cat on a roof"
        assert "put it on a roof" not in transport.calls_to("refine_image")[0]["body"]

    def test_phases_run_in_order(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        authorized_client.refine_image(_request())
        urls = [c["url"] for c in transport.calls]
        assert urls == [
            transport.calls_to("rewrite_prompt")[0]["url"],
            transport.calls_to("refine_image")[0]["url"],
        ]

    def test_auth_modes_per_phase(self, client, transport):
        transport.queue("session", SESSION_OK)
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        assert isinstance(client.refine_image(_request()), Success)

        rewrite_headers = transport.calls_to("rewrite_prompt")[0]["headers"]
        assert rewrite_headers["Cookie"] == "abc"
        assert "Authorization" not in rewrite_headers

        generate_headers = transport.calls_to("refine_image")[0]["headers"]
        assert generate_headers["Authorization"] == "Bearer tok123"
        assert generate_headers["Content-Type"] == "text/plain;charset=UTF-8"
        assert "Cookie" not in generate_headers

    def test_defaults_applied(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        request = _request()
        authorized_client.refine_image(request)
        body = transport.json_body("refine_image")
        assert body["userInput"]["candidatesCount"] == 1
        assert body["userInput"]["seed"] == 0
        assert body["modelInput"] == {"modelNameType": "IMAGEN_3_5"}
        assert body["aspectRatio"] == "IMAGE_ASPECT_RATIO_LANDSCAPE"
        assert body["clientContext"]["workflowId"] == "w1"
        assert transport.json_body("rewrite_prompt")["json"]["editingImage"]["seed"] == 0
        # caller's request untouched
        assert request.seed is None and request.count is None

    def test_explicit_values_kept(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", IMAGES_OK)
        authorized_client.refine_image(_request(
            seed=7, count=4, image_model="IMAGEN_4", aspect_ratio="IMAGE_ASPECT_RATIO_PORTRAIT",
        ))
        body = transport.json_body("refine_image")
        assert body["userInput"]["candidatesCount"] == 4
        assert body["userInput"]["seed"] == 7
        assert body["modelInput"]["modelNameType"] == "IMAGEN_4"
        assert body["aspectRatio"] == "IMAGE_ASPECT_RATIO_PORTRAIT"


# ---------------------------------------------------------------------------
# Class: phase A failures
# ---------------------------------------------------------------------------

class TestRewriteFailure:

    def test_service_error_skips_generation(self, authorized_client, transport):
        transport.queue("rewrite_prompt", '{"error":"forbidden"}')
        result = authorized_client.refine_image(_request())
        assert isinstance(result, Failure)
        assert result.error.category == ErrorCategory.REMOTE_SERVICE
        assert "rewrite prompt" in result.error.message
        assert transport.calls_to("refine_image") == []

    def test_transport_failure_unchanged(self, authorized_client, transport):
        failure = err(ErrorCategory.TRANSPORT, "reset by peer")
        transport.queue("rewrite_prompt", failure)
        assert authorized_client.refine_image(_request()) is failure
        assert transport.calls_to("refine_image") == []

    def test_unparseable_response(self, authorized_client, transport):
        transport.queue("rewrite_prompt", "<html>")
        result = authorized_client.refine_image(_request())
        assert result.error.category == ErrorCategory.DECODE
        assert transport.calls_to("refine_image") == []

    @pytest.mark.parametrize("body", [
        '{"result": {"data": {}}}',
        '{"result": {"data": {"json": ""}}}',
        '{"result": {"data": {"json": {"prompt": "x"}}}}',
    ])
    def test_missing_rewritten_prompt(self, authorized_client, transport, body):
        transport.queue("rewrite_prompt", body)
        result = authorized_client.refine_image(_request())
        assert result.error.category == ErrorCategory.DECODE
        assert transport.calls_to("refine_image") == []

    def test_auth_failure_skips_both_phases(self, client, transport):
        transport.queue("session", '{"error": "expired"}')
        result = client.refine_image(_request())
        assert result.error.category == ErrorCategory.AUTH
        assert transport.calls_to("rewrite_prompt") == []
        assert transport.calls_to("refine_image") == []

    @pytest.mark.parametrize("overrides", [
        {"new_refinement": ""},
        {"image_id": ""},
        {"base64_image": ""},
        {"project_id": ""},
        {"aspect_ratio": "IMAGE_ASPECT_RATIO_WIDE"},
    ])
    def test_invalid_request_makes_no_calls(self, client, transport, overrides):
        result = client.refine_image(_request(**overrides))
        assert result.error.category == ErrorCategory.PRECONDITION
        assert transport.calls == []


# ---------------------------------------------------------------------------
# Class: phase B failures
# ---------------------------------------------------------------------------

class TestGenerationFailure:

    def test_service_error(self, authorized_client, transport):
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", '{"error": {"code": 500}}')
        result = authorized_client.refine_image(_request())
        assert result.error.category == ErrorCategory.REMOTE_SERVICE
        assert "generate refined image" in result.error.message

    def test_transport_failure_unchanged(self, authorized_client, transport):
        failure = err(ErrorCategory.TRANSPORT, "timeout")
        transport.queue("rewrite_prompt", REWRITE_OK).queue("refine_image", failure)
        assert authorized_client.refine_image(_request()) is failure


# ---------------------------------------------------------------------------
# Class: payload builders
# ---------------------------------------------------------------------------

class TestPayloads:

    def test_rewrite_payload_describes_edit(self):
        payload = build_rewrite_payload(_request(seed=3))
        assert payload["json"]["existingPrompt"] == "a cat"
        assert payload["json"]["textInput"] == "put it on a roof"
        editing = payload["json"]["editingImage"]
        assert editing["imageId"] == editing["mediaKey"] == "media-1"
        assert editing["base64Image"] == "aGVsbG8="
        assert editing["currentImageAction"] == "REFINING"
        assert editing["seed"] == 3

    def test_generation_payload_ignores_instruction(self):
        payload = build_generation_payload(_request(count=2), "rewritten")
        assert "put it on a roof" not in json.dumps(payload)
        assert payload["userInput"]["prompts"] == ["rewritten"]
