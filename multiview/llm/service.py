"""Describe-image operation of the AI client adapter.

Architectural role:
    Turns an uploaded image into the short base description used to build
    per-view prompts. Bridges prompt text (`prompting.prompt_builder`) to
    transport (`llm.client`).

Model call flow:
    data URL -> inline part + instruction -> `client.send_generate_content`
    -> text -> quote cleanup.

Determinism:
    Payload construction is deterministic for fixed inputs and configuration.
    Generated output remains non-deterministic because inference runs remotely.

Failure scenarios:
    Any failure (bad data URL, missing key, transport error, empty text) is
    logged and re-raised as `AnalysisError` with a generic message.
"""

import logging

from multiview.api.multimodal.image_input_manager import to_inline_part
from multiview.core.errors import AnalysisError
from multiview.llm.client import extract_text, send_generate_content
from multiview.llm.provider_config import DESCRIBE_MODEL
from multiview.prompting.prompt_builder import DESCRIBE_INSTRUCTION, clean_description


logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Could not analyze the image. Please try another one."


def describe_image(image_data_url: str) -> str:
    """Return a concise description of the main subject of an image.

    Args:
        image_data_url: Uploaded image as a base64 data URL.

    Returns:
        Description with surrounding whitespace and quote characters removed.

    Raises:
        AnalysisError: On any failure or when the model returns no text.
    """
    try:
        parts = [
            to_inline_part(image_data_url),
            {"text": DESCRIBE_INSTRUCTION},
        ]
        data = send_generate_content(DESCRIBE_MODEL, parts)
        text = extract_text(data)
        if not text or not text.strip():
            raise ValueError("Failed to get a description from the model.")
        description = clean_description(text)
        if not description:
            raise ValueError("Model description was empty after cleanup.")
        return description
    except Exception:
        logger.exception("Error in describe_image")
        raise AnalysisError(ANALYSIS_FAILED_MESSAGE)
