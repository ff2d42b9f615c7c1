import pytest

from multiview.prompting.prompt_builder import (
    FACE_PRESERVATION_SUFFIX,
    build_edit_prompt,
    build_view_prompt,
    clean_description,
    normalize_view_label,
)


@pytest.mark.parametrize("label, expected", [
    ("Front", "front view"),
    ("Left Side", "left side view"),
    ("Top View", "top view"),
    ("overview", "overview"),
])
def test_normalize_view_label(label, expected):
    assert normalize_view_label(label) == expected


def test_build_view_prompt():
    assert build_view_prompt("A red sports car", "Back") == (
        "A red sports car, back view, detailed, cinematic lighting, 4k, trending on artstation"
    )


def test_build_edit_prompt_appends_face_instruction():
    prompt = build_edit_prompt("A cat, front view")
    assert prompt.startswith("A cat, front view. ")
    assert prompt.endswith(FACE_PRESERVATION_SUFFIX)


def test_clean_description_strips_quotes():
    assert clean_description('  "A \'vintage\' camera"\n') == "A vintage camera"
