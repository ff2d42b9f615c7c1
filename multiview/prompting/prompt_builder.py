"""Prompt construction for the describe and generate-view operations.

Architectural role:
    Owns every instruction string sent to the remote AI service so that
    adapters (`llm.service`, `image.service`) and the orchestrator
    (`core.engine`) stay free of literal prompt text.

Determinism:
    Pure string assembly; deterministic for identical inputs.
"""

DESCRIBE_INSTRUCTION = (
    "Describe the main subject of this image in a single, concise phrase, "
    "suitable for a detailed image generation prompt. For example: "
    "'A red sports car' or 'A majestic snow-capped mountain'."
)

# Appended to every per-view prompt.
STYLE_QUALIFIERS = (
    "detailed",
    "cinematic lighting",
    "4k",
    "trending on artstation",
)

FACE_PRESERVATION_SUFFIX = (
    "IMPORTANT: The face of the person must remain exactly the same as in the "
    "provided image. Do not change the facial features, expression, or identity."
)


def normalize_view_label(view: str) -> str:
    """Return the lowercase camera phrase for a view label.

    `"Front"` becomes `"front view"`; labels already ending in "view"
    (case-insensitive) are only lowercased.
    """
    label = view.strip()
    if not label.lower().endswith("view"):
        label = f"{label} view"
    return label.lower()


def build_view_prompt(description: str, view: str) -> str:
    """Combine the base description, the view phrase and style qualifiers."""
    segments = [description.strip(), normalize_view_label(view), *STYLE_QUALIFIERS]
    return ", ".join(segments)


def build_edit_prompt(prompt: str) -> str:
    """Wrap a view prompt for edit mode, asking the model to keep the identity."""
    return f"{prompt}. {FACE_PRESERVATION_SUFFIX}"


def clean_description(text: str) -> str:
    """Strip surrounding whitespace and every quote character from model text."""
    return text.strip().replace('"', "").replace("'", "")
