"""Run-state data contracts shared by the orchestrator and presentation layers.

Architectural role:
    `RunState` is the mutable, transient state of one studio session.
    The orchestrator publishes immutable `RunSnapshot`s of it, wrapped in
    `RunEvent`s, after every observable change.

Control-flow interaction:
    `engine.GenerationOrchestrator.run` moves `RunState.step` through
    `None -> analyzing -> generating -> None`; errors are terminal for the run
    and always return the step to `None`.
"""

from dataclasses import dataclass, field
from enum import Enum


class RunStep(str, Enum):
    ANALYZING = "analyzing"
    GENERATING = "generating"


class GenerationMode(str, Enum):
    """Strategy used to render each view.

    `EDIT` conditions on the uploaded image; `GENERATE` uses the prompt only.
    """

    EDIT = "edit"
    GENERATE = "generate"


@dataclass(frozen=True)
class GeneratedView:
    """One successfully rendered camera angle."""

    view: str
    image_url: str

    def to_dict(self) -> dict:
        return {"view": self.view, "image_url": self.image_url}


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable copy of `RunState` published to presentation layers."""

    uploaded_image: str | None
    base_description: str | None
    is_loading: bool
    step: RunStep | None
    progress_message: str | None
    error: str | None
    generated_views: tuple[GeneratedView, ...]

    def to_dict(self, include_images: bool = True) -> dict:
        views = [view.to_dict() for view in self.generated_views]
        if not include_images:
            views = [{"view": view["view"]} for view in views]
        return {
            "has_image": self.uploaded_image is not None,
            "base_description": self.base_description,
            "is_loading": self.is_loading,
            "step": self.step.value if self.step else None,
            "progress_message": self.progress_message,
            "error": self.error,
            "generated_views": views,
        }


@dataclass
class RunState:
    """Transient per-session state; never persisted."""

    uploaded_image: str | None = None
    base_description: str | None = None
    is_loading: bool = False
    step: RunStep | None = None
    progress_message: str | None = None
    error: str | None = None
    generated_views: list[GeneratedView] = field(default_factory=list)

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            uploaded_image=self.uploaded_image,
            base_description=self.base_description,
            is_loading=self.is_loading,
            step=self.step,
            progress_message=self.progress_message,
            error=self.error,
            generated_views=tuple(self.generated_views),
        )

    def replace_image(self, image_data_url: str) -> None:
        """Install a new upload and drop everything derived from the old one."""
        self.uploaded_image = image_data_url
        self.generated_views = []
        self.base_description = None
        self.error = None

    def clear_progress(self) -> None:
        self.is_loading = False
        self.step = None
        self.progress_message = None


@dataclass(frozen=True)
class RunEvent:
    """Progress notification emitted by the orchestrator.

    Kinds:
        `started`, `step`, `progress`, `description`, `view`, `error`,
        `finished`.
    """

    kind: str
    state: RunSnapshot

    def to_dict(self, include_images: bool = True) -> dict:
        return {"event": self.kind, "state": self.state.to_dict(include_images)}
