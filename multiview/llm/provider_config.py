"""Provider/runtime configuration for the multiview studio.

Architectural role:
    Centralizes model/provider selection, credential lookup and studio defaults
    for `multiview.llm`, `multiview.image`, `multiview.quota` and
    `multiview.core`.

Model call flow integration:
    - `llm.service.describe_image` consumes `DESCRIBE_MODEL`.
    - `image.client` consumes `EDIT_MODEL`; `image.imagen_client` consumes
      `GENERATE_MODEL`.
    - Every transport resolves its key through `load_key(GEMINI_KEY_FILE)`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are
    resolved at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and turned into a
    `RuntimeError` by the transports.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Remote AI service endpoints.
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models"
).rstrip("/")

GEMINI_URL_TEMPLATE = GEMINI_BASE_URL + "/{model}:generateContent"
IMAGEN_URL_TEMPLATE = GEMINI_BASE_URL + "/{model}:predict"

GEMINI_KEY_FILE = "config/gemini.key"

# Models used by the two adapter operations.
DESCRIBE_MODEL = os.getenv("DESCRIBE_MODEL", "gemini-2.5-flash")
EDIT_MODEL = os.getenv("EDIT_MODEL", "gemini-2.5-flash-image-preview")
GENERATE_MODEL = os.getenv("GENERATE_MODEL", "imagen-4.0-generate-001")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))


def _parse_view_types(raw):
    """Split a comma separated view list, dropping blanks."""
    views = [item.strip() for item in raw.split(",") if item.strip()]
    return tuple(views)


# Ordered camera angles requested per run.
VIEW_TYPES = _parse_view_types(os.getenv("VIEW_TYPES", "Front,Back,Left,Right"))

# Spacing between successive per-view calls (remote rate limit).
VIEW_DELAY_SECONDS = float(os.getenv("VIEW_DELAY_SECONDS", "1"))

# Quota persistence and defaults.
QUOTA_STORE_PATH = os.getenv("QUOTA_STORE_PATH", "quota_state.json")
DEFAULT_TOTAL_CREDITS = 10
DEFAULT_USED_CREDITS = 0

DEFAULT_GENERATION_MODE = os.getenv("DEFAULT_GENERATION_MODE", "edit").strip().lower()

# HTTP server binding for `multiview.api.main`.
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip()
