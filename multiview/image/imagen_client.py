"""Generate-mode image client (Imagen text-to-image).

Processing flow:
    1. Build an Imagen `predict` payload from the prompt.
    2. Submit a single synchronous request.
    3. Return the first prediction as `(mime_type, base64_data)`.

Multimodal scope:
    Text-to-image only. The uploaded image is never sent.

Error handling strategy:
    - Missing key raises `RuntimeError`.
    - HTTP-layer failures propagate via `requests.raise_for_status()`.
    - A response without image bytes raises `RuntimeError`.
"""

import logging

import requests

from multiview.llm.client import build_headers
from multiview.llm.provider_config import (
    GENERATE_MODEL,
    IMAGEN_URL_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
)


logger = logging.getLogger(__name__)


def send_imagen_request(prompt: str, sample_count: int = 1) -> tuple[str, str]:
    """Generate an image from text only.

    Args:
        prompt: Full generation prompt.
        sample_count: Number of images requested; only the first is used.

    Returns:
        `(mime_type, base64_data)` of the first generated image.
    """
    url = IMAGEN_URL_TEMPLATE.format(model=GENERATE_MODEL)

    payload = {
        "instances": [
            {"prompt": prompt}
        ],
        "parameters": {
            "sampleCount": sample_count
        }
    }

    logger.debug("Imagen request: model=%s", GENERATE_MODEL)

    response = requests.post(
        url,
        headers=build_headers(),
        json=payload,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    data = response.json()

    for prediction in data.get("predictions") or []:
        encoded = prediction.get("bytesBase64Encoded")
        if encoded:
            return prediction.get("mimeType") or "image/png", encoded

    raise RuntimeError("Imagen returned no image bytes.")
