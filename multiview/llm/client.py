"""Gemini `generateContent` transport client.

Architectural role:
    Executes one HTTP request against the Gemini REST API and returns the parsed
    JSON body. Response interpretation (text vs. inline image parts) belongs to
    the callers in `llm.service` and `image.client`.

Model invocation flow:
    `service.describe_image` / `image.client.send_edit_request`
    -> `send_generate_content(model, parts, generation_config)` -> JSON dict.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with the
    configured timeout.

Failure handling model:
    Missing credentials raise `RuntimeError`; HTTP failures propagate as
    `requests` exceptions. Callers translate both into domain errors.
"""

import logging

import requests

from multiview.llm.provider_config import (
    GEMINI_KEY_FILE,
    GEMINI_URL_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
    load_key,
)


logger = logging.getLogger(__name__)


def build_headers() -> dict:
    """Return Gemini request headers with the resolved API key.

    Raises:
        RuntimeError: When no key is configured.
    """
    api_key = load_key(GEMINI_KEY_FILE)
    if not api_key:
        raise RuntimeError("GEMINI KEY FILE NOT FOUND")

    return {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }


def send_generate_content(model: str, parts: list, generation_config: dict | None = None) -> dict:
    """Send one `generateContent` request and return the JSON response.

    Args:
        model: Gemini model name inserted into the endpoint template.
        parts: Content parts (`{"text": ...}` / `{"inlineData": ...}`) of the
            single user turn.
        generation_config: Optional `generationConfig` object.

    Returns:
        Parsed JSON body.

    Failure scenarios:
        - Missing key -> `RuntimeError`.
        - Non-2xx status -> `requests.HTTPError`.
        - Network errors -> `requests.RequestException`.
    """
    url = GEMINI_URL_TEMPLATE.format(model=model)

    payload = {
        "contents": [
            {
                "role": "user",
                "parts": parts,
            }
        ],
    }
    if generation_config:
        payload["generationConfig"] = generation_config

    logger.debug("Gemini request: model=%s parts=%d", model, len(parts))

    response = requests.post(
        url,
        headers=build_headers(),
        json=payload,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )

    response.raise_for_status()
    return response.json()


def iter_response_parts(data: dict):
    """Yield content parts of every candidate in a Gemini response."""
    for candidate in data.get("candidates") or []:
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            if isinstance(part, dict):
                yield part


def extract_text(data: dict) -> str:
    """Concatenate text parts of the first candidate; empty when none."""
    first = {"candidates": (data.get("candidates") or [])[:1]}
    texts = [part["text"] for part in iter_response_parts(first) if part.get("text")]
    return "".join(texts)


def extract_inline_image(data: dict) -> tuple[str, str] | None:
    """Return `(mime_type, base64_data)` of the first inline image part.

    Both camelCase and snake_case field spellings are accepted.
    """
    for part in iter_response_parts(data):
        inline_data = part.get("inlineData") or part.get("inline_data")
        if inline_data and inline_data.get("data"):
            mime_type = (
                inline_data.get("mimeType")
                or inline_data.get("mime_type")
                or "image/png"
            )
            return mime_type, inline_data["data"]
    return None
