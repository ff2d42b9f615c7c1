"""Generation orchestration: describe the upload, then render each view.

Architectural role:
    Provides the run pipeline used by `core.session` to turn one uploaded image
    into an ordered list of generated views while publishing progress.

Control-flow model:
    1. Check the mode and preconditions (image present, quota not
       depleted). Rejections consume no credit and leave results untouched.
    2. Charge one credit up front; it is not refunded on failure.
    3. `analyzing`: call the describe operation once.
    4. `generating`: for each configured view, build a prompt and call the
       generate-view operation in the mode captured at run start. Calls are
       strictly sequential with `view_delay` seconds between them.
    5. Publish a snapshot after every successful view.
    6. Stop at the first failing view; completed views stay visible.
    7. Always clear loading/step/progress flags.

Interaction surface:
    - Quota: `quota.store.QuotaStore`.
    - AI service: any object implementing `AIClientProtocol`; the default
      delegates to `llm.service` and `image.service`.
    - Prompting: `prompting.prompt_builder.build_view_prompt`.

Error handling strategy:
    No exception escapes `run`. An unknown mode or a failed precondition
    becomes a `rejected` event. Quota persistence, analysis and generation
    failures become an `error` event followed by `finished`.

Side effects:
    - Mutates the shared `RunState`.
    - Persists quota through `QuotaStore.consume_one`.
    - Blocking adapter calls run in worker threads via `asyncio.to_thread`.
"""

import asyncio
import logging
from typing import AsyncIterator, Protocol

from multiview.core.errors import MultiviewError, ValidationError
from multiview.core.run_types import (
    GeneratedView,
    GenerationMode,
    RunEvent,
    RunState,
    RunStep,
)
from multiview.image.service import edit_image_view, generate_image_view
from multiview.llm.provider_config import VIEW_DELAY_SECONDS, VIEW_TYPES
from multiview.llm.service import describe_image
from multiview.prompting.prompt_builder import build_view_prompt
from multiview.quota.store import QuotaStore


logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Please upload an image first."
NO_CREDITS_MESSAGE = (
    "You have run out of generation credits. "
    "Please set a new credit balance or reset usage."
)
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
API_ERROR_MESSAGE = "An API error occurred."


class AIClientProtocol(Protocol):
    """Remote AI operations consumed by the orchestrator."""

    def describe(self, image_data_url: str) -> str:
        """Return a short description of the image subject."""
        ...

    def generate_view(
        self,
        image_data_url: str | None,
        prompt: str,
        mode: GenerationMode,
    ) -> str:
        """Return a data URL for one rendered view."""
        ...


class GeminiAIClient:
    """Default adapter backed by the Gemini/Imagen REST services."""

    def describe(self, image_data_url: str) -> str:
        return describe_image(image_data_url)

    def generate_view(
        self,
        image_data_url: str | None,
        prompt: str,
        mode: GenerationMode,
    ) -> str:
        if mode is GenerationMode.EDIT:
            if not image_data_url:
                raise ValidationError(NO_IMAGE_MESSAGE)
            return edit_image_view(image_data_url, prompt)
        return generate_image_view(prompt)


def format_view_error(view: str, message: str) -> str:
    """User-facing text for a fail-fast abort on `view`."""
    return f'Error on "{view}": {message}. The process has been stopped.'


class GenerationOrchestrator:
    """Runs the describe-then-generate sequence against one `RunState`.

    Args:
        state: Session run state, mutated in place.
        quota: Persisted credit counters.
        ai_client: Remote AI adapter; defaults to `GeminiAIClient`.
        views: Ordered view labels requested per run.
        view_delay: Seconds to wait between successive view calls.
        sleep: Awaitable sleep function (overridable in tests).
    """

    def __init__(
        self,
        state: RunState,
        quota: QuotaStore,
        ai_client: AIClientProtocol | None = None,
        views=VIEW_TYPES,
        view_delay: float = VIEW_DELAY_SECONDS,
        sleep=None,
    ) -> None:
        self.state = state
        self.quota = quota
        self.ai_client = ai_client or GeminiAIClient()
        self.views = tuple(views)
        self.view_delay = view_delay
        self._sleep = sleep or asyncio.sleep

    def check_preconditions(self) -> None:
        """Raise `ValidationError` unless a run may start."""
        if not self.state.uploaded_image:
            raise ValidationError(NO_IMAGE_MESSAGE)
        if self.quota.is_depleted():
            raise ValidationError(NO_CREDITS_MESSAGE)

    def _event(self, kind: str) -> RunEvent:
        return RunEvent(kind=kind, state=self.state.snapshot())

    async def run(self, mode: GenerationMode | str) -> AsyncIterator[RunEvent]:
        """Execute one generation run, yielding progress events.

        Args:
            mode: Generation strategy; fixed for the whole run.

        Yields:
            `RunEvent`s. A rejected run yields exactly one `rejected` event.
            Every started run ends with `finished`, preceded by `error` when
            it was aborted.
        """
        try:
            mode = GenerationMode(mode)
            self.check_preconditions()
        except ValueError:
            self.state.error = f"Unknown generation mode: {mode}"
            yield self._event("rejected")
            return
        except ValidationError as exc:
            self.state.error = exc.message
            yield self._event("rejected")
            return

        image = self.state.uploaded_image
        error = None
        results: list[GeneratedView] = []

        try:
            self.state.is_loading = True
            self.state.error = None
            self.state.generated_views = []
            self.quota.consume_one()

            logger.info(
                "Generation run started: mode=%s views=%s remaining=%d",
                mode.value,
                ",".join(self.views),
                self.quota.remaining(),
            )
            yield self._event("started")

            self.state.step = RunStep.ANALYZING
            yield self._event("step")

            description = await asyncio.to_thread(self.ai_client.describe, image)
            self.state.base_description = description
            yield self._event("description")

            self.state.step = RunStep.GENERATING
            yield self._event("step")

            source = image if mode is GenerationMode.EDIT else None

            for index, view in enumerate(self.views):
                if index:
                    await self._sleep(self.view_delay)

                self.state.progress_message = f"Generating: {view}"
                yield self._event("progress")

                prompt = build_view_prompt(description, view)

                try:
                    image_url = await asyncio.to_thread(
                        self.ai_client.generate_view, source, prompt, mode
                    )
                except Exception as exc:
                    if isinstance(exc, MultiviewError):
                        message = exc.message
                    else:
                        logger.exception("Unexpected failure generating view %s", view)
                        message = str(exc) or API_ERROR_MESSAGE
                    logger.warning("Generation aborted on view %s: %s", view, message)
                    error = format_view_error(view, message)
                    break

                results.append(GeneratedView(view=view, image_url=image_url))
                self.state.generated_views = list(results)
                yield self._event("view")

        except MultiviewError as exc:
            logger.warning("Generation run aborted: %s", exc.message)
            error = exc.message
        except Exception as exc:
            logger.exception("Unexpected error during generation run")
            error = str(exc) or UNKNOWN_ERROR_MESSAGE
        finally:
            self.state.clear_progress()

        if error:
            self.state.error = error
            yield self._event("error")

        logger.info("Generation run finished: %d/%d views", len(results), len(self.views))
        yield self._event("finished")
