"""Generate-view operation of the AI client adapter.

Role in pipeline:
    - Receives one per-view prompt from the orchestrator.
    - Selects the provider path for the run's generation mode:
      `edit` (source image + prompt) or `generate` (prompt only).
    - Returns the generated image as an embeddable data URL.

Error handling strategy:
    Every failure is logged and re-raised as `GenerationError` naming the
    prompt. No retry is attempted.
"""

import logging

from multiview.core.errors import GenerationError
from multiview.image.client import send_edit_request
from multiview.image.imagen_client import send_imagen_request
from multiview.prompting.prompt_builder import build_edit_prompt


logger = logging.getLogger(__name__)


def _failure_message(prompt: str) -> str:
    return f'Failed to generate view for prompt: "{prompt}"'


def _to_data_url(mime_type: str, encoded: str) -> str:
    return f"data:{mime_type};base64,{encoded}"


def edit_image_view(image_data_url: str, prompt: str) -> str:
    """Render a view by editing the source image.

    Args:
        image_data_url: Uploaded image as a data URL.
        prompt: Per-view prompt; the face-preservation instruction is appended.

    Returns:
        Generated image as a data URL.

    Raises:
        GenerationError: On any failure or missing image payload.
    """
    try:
        mime_type, encoded = send_edit_request(image_data_url, build_edit_prompt(prompt))
        return _to_data_url(mime_type, encoded)
    except Exception:
        logger.exception("Error in edit_image_view")
        raise GenerationError(_failure_message(prompt))


def generate_image_view(prompt: str) -> str:
    """Render a view from the prompt text alone.

    Raises:
        GenerationError: On any failure or missing image payload.
    """
    try:
        mime_type, encoded = send_imagen_request(prompt)
        return _to_data_url(mime_type, encoded)
    except Exception:
        logger.exception("Error in generate_image_view")
        raise GenerationError(_failure_message(prompt))
