"""Text rendering of studio state for terminal and log output.

Architectural role:
- Turn `StudioSession` / `RunSnapshot` data into short human-readable blocks:
  quota panel, mode selector, loader line, error banner, gallery listing.
- Shared by the CLI and by HTTP debug output; no I/O happens here.
"""

from multiview.core.run_types import GenerationMode, RunSnapshot, RunStep
from multiview.quota.store import QuotaState


MODE_DESCRIPTIONS = {
    GenerationMode.EDIT: (
        "Image Editing (Preserves Face)",
        "Uses the original photo to keep the face consistent. Recommended for best results.",
    ),
    GenerationMode.GENERATE: (
        "Image Generation (New Face)",
        "Generates from text only. Use this if the editing model is unavailable or over quota.",
    ),
}


def loader_message(step: RunStep | None) -> str:
    """Headline shown while a run is active."""
    if step is RunStep.ANALYZING:
        return "Analyzing your image..."
    if step is RunStep.GENERATING:
        return "Generating 3D views... This may take a moment."
    return "Processing..."


def render_quota(quota: QuotaState) -> str:
    return f"Credits remaining: {quota.remaining} / {quota.total_credits}"


def render_modes(selected: GenerationMode) -> str:
    lines = []
    for mode, (title, description) in MODE_DESCRIPTIONS.items():
        marker = "(*)" if mode is selected else "( )"
        lines.append(f"{marker} {mode.value}: {title}")
        lines.append(f"      {description}")
    return "\n".join(lines)


def render_progress(snapshot: RunSnapshot) -> str:
    """Loader line plus optional per-view progress message."""
    line = loader_message(snapshot.step)
    if snapshot.progress_message:
        line = f"{line} [{snapshot.progress_message}]"
    return line


def render_result(snapshot: RunSnapshot) -> str:
    """Error banner, base prompt and gallery for a settled run."""
    lines = []
    if snapshot.error:
        lines.append(f"ERROR: {snapshot.error}")
    if snapshot.base_description:
        lines.append(f'Generated Base Prompt: "{snapshot.base_description}"')
    if snapshot.generated_views:
        lines.append("Generated Views:")
        for index, view in enumerate(snapshot.generated_views, start=1):
            lines.append(f"  {index}. {view.view} ({len(view.image_url)} chars)")
    return "\n".join(lines)
