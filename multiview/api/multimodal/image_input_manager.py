"""
Image intake utilities for the presentation adapters.

Architectural role:
- Accept one user-selected image (file picker or drag-and-drop).
- Convert raw bytes into an embeddable `data:` URL.
- Decode `data:` URLs back into Gemini inline-data parts.
- Provide best-effort image metadata for display.

Processing lifecycle:
1. Resolve MIME type from the declared content type or the filename.
2. Validate: drag-and-drop requires an `image/` MIME type; picker selections
   rely on type filtering (`ALLOWED_EXTENSIONS`).
3. Encode bytes as `data:<mime>;base64,<payload>`.
4. Read format/size with Pillow for display only.

Interaction with core:
- The caller hands the returned `ImageUpload` to `StudioSession.upload_image`,
  which replaces the previous upload and clears downstream results.

Error handling strategy:
- Validation failures raise `ValidationError` with a user-facing message.
- Unreadable metadata does not reject an upload; fields stay `None`.

Size validation:
- None. Image size and dimensions are not restricted.
"""

import base64
import io
import logging
import mimetypes
import os
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from multiview.core.errors import ValidationError


logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

ALLOWED_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"
}
UPLOAD_SOURCES = ("picker", "drop")

_DATA_URL_PATTERN = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class ImageUpload:
    """Accepted upload ready to be handed to the session."""

    data_url: str
    mime_type: str
    filename: Optional[str] = None
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "mime_type": self.mime_type,
            "filename": self.filename,
            "format": self.format,
            "width": self.width,
            "height": self.height,
        }


# ============================================================
# PUBLIC ENTRYPOINTS
# ============================================================

def accept_image(
    content: bytes,
    mime_type: Optional[str] = None,
    filename: Optional[str] = None,
    source: str = "picker",
) -> ImageUpload:
    """
    Validate raw image bytes and build an `ImageUpload`.

    Validation behavior:
    - Unknown `source` -> `ValidationError`.
    - Empty content -> `ValidationError`.
    - `source == "drop"` and MIME type not starting with `image/` ->
      `ValidationError`.
    - `source == "picker"` and the resolved MIME type is not an image ->
      `ValidationError`.
    """
    if source not in UPLOAD_SOURCES:
        raise ValidationError(f"Unknown upload source: {source}")

    if not content:
        raise ValidationError("The selected file is empty.")

    resolved = _resolve_mime_type(mime_type, filename)

    if source == "drop":
        if not (mime_type or "").startswith("image/"):
            raise ValidationError("Only image files can be dropped here.")
        resolved = mime_type
    elif not resolved or not resolved.startswith("image/"):
        raise ValidationError("Please select an image file.")

    upload_format, width, height = _read_metadata(content)

    return ImageUpload(
        data_url=encode_data_url(content, resolved),
        mime_type=resolved,
        filename=filename,
        format=upload_format,
        width=width,
        height=height,
    )


def read_image_file(path: str, source: str = "picker") -> ImageUpload:
    """
    Load an image from the local filesystem (CLI picker / drop equivalent).

    Picker selections are filtered by `ALLOWED_EXTENSIONS`; dropped files are
    checked by guessed MIME type only.
    """
    normalized = os.path.realpath(os.path.expanduser(path))

    if not os.path.isfile(normalized):
        raise ValidationError(f"File does not exist: {path}")

    _, ext = os.path.splitext(normalized)
    if source == "picker" and ext.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationError("Unsupported file type")

    with open(normalized, "rb") as f:
        content = f.read()

    mime_type, _ = mimetypes.guess_type(normalized)
    return accept_image(
        content,
        mime_type=mime_type,
        filename=os.path.basename(normalized),
        source=source,
    )


# ============================================================
# DATA URLS
# ============================================================

def encode_data_url(content: bytes, mime_type: str) -> str:
    """Return `data:<mime>;base64,<payload>` for raw bytes."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def parse_data_url(data_url: str) -> tuple[str, str]:
    """Split a base64 data URL into `(mime_type, base64_payload)`.

    Raises:
        ValueError: When the string is not a base64 data URL.
    """
    match = _DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise ValueError("Invalid data URL format")
    return match.group(1), match.group(2)


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Return `(mime_type, raw_bytes)` for a base64 data URL."""
    mime_type, payload = parse_data_url(data_url)
    return mime_type, base64.b64decode(payload)


def to_inline_part(data_url: str) -> dict:
    """Convert a data URL into a Gemini `inlineData` content part."""
    mime_type, payload = parse_data_url(data_url)
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": payload,
        }
    }


def extension_for(mime_type: str) -> str:
    """Best file extension for a MIME type, `.png` when unknown."""
    if mime_type == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime_type or "") or ".png"


# ============================================================
# HELPERS
# ============================================================

def _resolve_mime_type(mime_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    """Prefer a declared image MIME type, else guess from the filename."""
    if mime_type and mime_type.startswith("image/"):
        return mime_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return mime_type


def _read_metadata(content: bytes):
    """Return `(format, width, height)` or `None`s when Pillow cannot read it."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.format, img.size[0], img.size[1]
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Could not read image metadata: %s", exc)
        return None, None, None
