"""
Tests for the describe and generate-view adapters with `requests.post` stubbed.
"""

import pytest
import requests

from multiview.core.engine import GeminiAIClient
from multiview.core.errors import AnalysisError, GenerationError, ValidationError
from multiview.core.run_types import GenerationMode
from multiview.image.service import edit_image_view, generate_image_view
from multiview.llm.provider_config import DESCRIBE_MODEL, EDIT_MODEL, GENERATE_MODEL
from multiview.llm.service import ANALYSIS_FAILED_MESSAGE, describe_image
from multiview.prompting.prompt_builder import DESCRIBE_INSTRUCTION, FACE_PRESERVATION_SUFFIX


IMAGE = "data:image/png;base64,SU1BR0U="


class FakeResponse:

    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")


@pytest.fixture
def post(monkeypatch, api_key):
    """Replace `requests.post` and record every call."""
    calls = []
    responses = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return responses.pop(0)

    monkeypatch.setattr(requests, "post", fake_post)
    fake_post.calls = calls
    fake_post.responses = responses
    return fake_post


def text_response(text):
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def image_response(data="R0VO", mime="image/jpeg", snake_case=False):
    if snake_case:
        part = {"inline_data": {"mime_type": mime, "data": data}}
    else:
        part = {"inlineData": {"mimeType": mime, "data": data}}
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": "here"}, part]}}]})


class TestDescribeImage:

    def test_success(self, post):
        post.responses.append(text_response('  "A red sports car"\n'))

        assert describe_image(IMAGE) == "A red sports car"

        call = post.calls[0]
        assert DESCRIBE_MODEL in call["url"]
        assert call["url"].endswith(":generateContent")
        assert call["headers"]["x-goog-api-key"] == "test-key"
        parts = call["json"]["contents"][0]["parts"]
        assert parts[0] == {"inlineData": {"mimeType": "image/png", "data": "SU1BR0U="}}
        assert parts[1] == {"text": DESCRIBE_INSTRUCTION}

    def test_uses_first_candidate_only(self, post):
        post.responses.append(FakeResponse({"candidates": [
            {"content": {"parts": [{"text": "A red sports car"}]}},
            {"content": {"parts": [{"text": "A blue bicycle"}]}},
        ]}))

        assert describe_image(IMAGE) == "A red sports car"

    def test_empty_text(self, post):
        post.responses.append(FakeResponse({"candidates": []}))
        with pytest.raises(AnalysisError) as excinfo:
            describe_image(IMAGE)
        assert excinfo.value.message == ANALYSIS_FAILED_MESSAGE

    def test_http_error(self, post):
        post.responses.append(FakeResponse({"error": "boom"}, status_code=500))
        with pytest.raises(AnalysisError):
            describe_image(IMAGE)

    def test_invalid_data_url(self, post):
        with pytest.raises(AnalysisError):
            describe_image("not-a-data-url")
        assert post.calls == []

    def test_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.chdir(tmp_path)
        with pytest.raises(AnalysisError):
            describe_image(IMAGE)


class TestEditImageView:

    def test_success(self, post):
        post.responses.append(image_response())

        assert edit_image_view(IMAGE, "A car, front view") == "data:image/jpeg;base64,R0VO"

        call = post.calls[0]
        assert EDIT_MODEL in call["url"]
        assert call["json"]["generationConfig"] == {"responseModalities": ["IMAGE", "TEXT"]}
        text = call["json"]["contents"][0]["parts"][1]["text"]
        assert text.startswith("A car, front view. ")
        assert text.endswith(FACE_PRESERVATION_SUFFIX)

    def test_snake_case_inline_data(self, post):
        post.responses.append(image_response(mime="image/webp", snake_case=True))
        assert edit_image_view(IMAGE, "p") == "data:image/webp;base64,R0VO"

    def test_no_image_part(self, post):
        post.responses.append(text_response("sorry"))
        with pytest.raises(GenerationError) as excinfo:
            edit_image_view(IMAGE, "A car, back view")
        assert excinfo.value.message == 'Failed to generate view for prompt: "A car, back view"'


class TestGenerateImageView:

    def test_success(self, post):
        post.responses.append(FakeResponse({
            "predictions": [{"bytesBase64Encoded": "UE5H", "mimeType": "image/png"}]
        }))

        assert generate_image_view("A car, left view") == "data:image/png;base64,UE5H"

        call = post.calls[0]
        assert GENERATE_MODEL in call["url"]
        assert call["url"].endswith(":predict")
        assert call["json"]["instances"] == [{"prompt": "A car, left view"}]

    def test_no_predictions(self, post):
        post.responses.append(FakeResponse({"predictions": []}))
        with pytest.raises(GenerationError) as excinfo:
            generate_image_view("A car, left view")
        assert excinfo.value.message == 'Failed to generate view for prompt: "A car, left view"'

    def test_transport_error(self, monkeypatch, api_key):
        def failing_post(*args, **kwargs):
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(requests, "post", failing_post)
        with pytest.raises(GenerationError):
            generate_image_view("prompt")


class TestGeminiAIClient:

    def test_edit_requires_image(self):
        with pytest.raises(ValidationError):
            GeminiAIClient().generate_view(None, "prompt", GenerationMode.EDIT)

    def test_generate_mode_uses_imagen(self, post):
        post.responses.append(FakeResponse({
            "predictions": [{"bytesBase64Encoded": "UE5H"}]
        }))
        result = GeminiAIClient().generate_view(None, "prompt", GenerationMode.GENERATE)
        assert result == "data:image/png;base64,UE5H"
        assert post.calls[0]["url"].endswith(":predict")
