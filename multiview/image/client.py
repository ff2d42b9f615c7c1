"""Edit-mode image client (Gemini image model).

Processing flow:
    1. Convert the source data URL into an inline-data part.
    2. Submit image + prompt to the configured edit model with
       `responseModalities = ["IMAGE", "TEXT"]`.
    3. Return the first inline image part as `(mime_type, base64_data)`.

Base64 and temporary files:
    - Image bytes stay base64 encoded end to end.
    - No temporary files are created.

Error handling strategy:
    - Misconfiguration and HTTP failures raise for upstream handling.
    - A response without an image part raises `RuntimeError`.
"""

from multiview.api.multimodal.image_input_manager import to_inline_part
from multiview.llm.client import extract_inline_image, send_generate_content
from multiview.llm.provider_config import EDIT_MODEL


def send_edit_request(image_data_url: str, prompt: str) -> tuple[str, str]:
    """Request an edited rendering of the source image.

    Args:
        image_data_url: Source image as a base64 data URL.
        prompt: Full edit instruction.

    Returns:
        `(mime_type, base64_data)` of the generated image.

    Error handling:
        - Invalid data URL -> `ValueError`
        - Missing API key -> `RuntimeError`
        - HTTP failures -> propagated `requests` exceptions
        - No image part returned -> `RuntimeError`
    """
    parts = [
        to_inline_part(image_data_url),
        {"text": prompt},
    ]
    data = send_generate_content(
        EDIT_MODEL,
        parts,
        generation_config={"responseModalities": ["IMAGE", "TEXT"]},
    )

    image = extract_inline_image(data)
    if image is None:
        raise RuntimeError("Image generation failed, no image part returned from the model.")
    return image
