"""Studio session: the state owner behind every presentation adapter.

Purpose of this abstraction:
    Hold one `RunState`, one persisted `QuotaStore` and the selected
    generation mode, and expose the user actions of the studio (upload, mode
    toggle, quota set/reset, generate) with the single-active-run rule.

Concurrency:
    Only one run may be active. While it is, `generate`, `upload_image`,
    `set_mode`, `set_total_credits` and `reset_credits` raise
    `ValidationError(BUSY_MESSAGE)`. The check-and-set happens without an
    intervening await, so it is atomic on the event loop.
"""

import logging
from typing import AsyncIterator

from multiview.api.multimodal.image_input_manager import ImageUpload
from multiview.core.engine import AIClientProtocol, GenerationOrchestrator
from multiview.core.errors import ValidationError
from multiview.core.run_types import GenerationMode, RunEvent, RunSnapshot, RunState
from multiview.llm.provider_config import (
    DEFAULT_GENERATION_MODE,
    QUOTA_STORE_PATH,
    VIEW_DELAY_SECONDS,
    VIEW_TYPES,
)
from multiview.quota.storage import JsonFileStorage
from multiview.quota.store import QuotaStore, parse_credit_input


logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A generation run is already in progress."


def _default_mode() -> GenerationMode:
    try:
        return GenerationMode(DEFAULT_GENERATION_MODE)
    except ValueError:
        logger.warning("Unknown DEFAULT_GENERATION_MODE %r, using edit", DEFAULT_GENERATION_MODE)
        return GenerationMode.EDIT


class StudioSession:
    """One user's studio: upload, quota, mode and the active run."""

    def __init__(
        self,
        quota: QuotaStore,
        ai_client: AIClientProtocol | None = None,
        mode: GenerationMode | str | None = None,
        views=VIEW_TYPES,
        view_delay: float = VIEW_DELAY_SECONDS,
        sleep=None,
    ) -> None:
        self.state = RunState()
        self.quota = quota
        self.mode = GenerationMode(mode) if mode else _default_mode()
        self.upload: ImageUpload | None = None
        self.orchestrator = GenerationOrchestrator(
            self.state,
            quota,
            ai_client=ai_client,
            views=views,
            view_delay=view_delay,
            sleep=sleep,
        )
        self._run_active = False

    @classmethod
    def from_env(cls, ai_client: AIClientProtocol | None = None) -> "StudioSession":
        """Build a session persisting quota to `QUOTA_STORE_PATH`."""
        quota = QuotaStore.load(JsonFileStorage(QUOTA_STORE_PATH))
        return cls(quota, ai_client=ai_client)

    # ------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._run_active

    @property
    def can_generate(self) -> bool:
        """Whether the primary action is enabled."""
        return (
            self.state.uploaded_image is not None
            and not self._run_active
            and not self.quota.is_depleted()
        )

    def snapshot(self) -> RunSnapshot:
        return self.state.snapshot()

    def to_dict(self, include_images: bool = True) -> dict:
        return {
            "quota": self.quota.state.to_dict(),
            "mode": self.mode.value,
            "can_generate": self.can_generate,
            "upload": self.upload.to_dict() if self.upload else None,
            "run": self.snapshot().to_dict(include_images),
        }

    def ensure_idle(self) -> None:
        if self._run_active:
            raise ValidationError(BUSY_MESSAGE)

    # ------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------

    def upload_image(self, upload: ImageUpload) -> None:
        """Replace the current image and clear results, description and error."""
        self.ensure_idle()
        self.upload = upload
        self.state.replace_image(upload.data_url)
        logger.info("Image uploaded: %s (%s)", upload.filename or "<unnamed>", upload.mime_type)

    def set_mode(self, mode: GenerationMode | str) -> GenerationMode:
        self.ensure_idle()
        try:
            self.mode = GenerationMode(mode)
        except ValueError:
            raise ValidationError(f"Unknown generation mode: {mode}")
        return self.mode

    def set_total_credits(self, raw) -> bool:
        """Apply a user-entered credit total.

        Returns:
            `True` when applied. Negative or non-integer input is ignored and
            the current total stays in place.
        """
        self.ensure_idle()
        total = parse_credit_input(raw)
        if total is None:
            logger.info("Rejected credit total input: %r", raw)
            return False
        return self.quota.set_total(total)

    def reset_credits(self) -> None:
        self.ensure_idle()
        self.quota.reset_used()

    async def generate(self) -> AsyncIterator[RunEvent]:
        """Run the orchestrator in the current mode, yielding its events.

        Raises:
            ValidationError: On first iteration when another run is active.
        """
        self.ensure_idle()
        self._run_active = True
        mode = self.mode
        try:
            async for event in self.orchestrator.run(mode):
                yield event
        finally:
            self._run_active = False
