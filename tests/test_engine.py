"""
Tests for the generation orchestrator.

Covers:
- Preconditions (no image, depleted quota) consume nothing
- Event sequence and ordering of generated views
- Fail-fast on a view error
- Analysis failure handling
- Inter-call delay between views
- Mode selection and prompt construction
"""

from conftest import FakeAIClient, RecordingSleep, collect_events

from multiview.core.engine import (
    NO_CREDITS_MESSAGE,
    NO_IMAGE_MESSAGE,
    GenerationOrchestrator,
    format_view_error,
)
from multiview.core.errors import AnalysisError
from multiview.core.run_types import GeneratedView, GenerationMode, RunState, RunStep
from multiview.quota.storage import MemoryStorage
from multiview.quota.store import QuotaStore


IMAGE = "data:image/png;base64,AAAA"


def make_orchestrator(quota, client=None, views=("front", "side"), image=IMAGE, sleep=None):
    state = RunState(uploaded_image=image)
    return GenerationOrchestrator(
        state,
        quota,
        ai_client=client or FakeAIClient(),
        views=views,
        view_delay=1.0,
        sleep=sleep or RecordingSleep(),
    )


class TestPreconditions:

    def test_no_image_rejected(self, quota):
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client, image=None)

        events = collect_events(orchestrator.run("edit"))

        assert [e.kind for e in events] == ["rejected"]
        assert events[0].state.error == NO_IMAGE_MESSAGE
        assert quota.used_credits == 0
        assert client.describe_calls == []

    def test_depleted_quota_rejected(self, quota):
        quota.set_total(1)
        quota.consume_one()
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client)
        previous = [GeneratedView("front", "data:image/png;base64,OLD")]
        orchestrator.state.generated_views = list(previous)

        events = collect_events(orchestrator.run("edit"))

        assert [e.kind for e in events] == ["rejected"]
        assert events[0].state.error == NO_CREDITS_MESSAGE
        assert quota.used_credits == 1
        assert orchestrator.state.generated_views == previous
        assert client.describe_calls == []
        assert not orchestrator.state.is_loading


class TestSuccessfulRun:

    def test_views_in_order(self, quota):
        orchestrator = make_orchestrator(quota, views=("front", "side"))

        events = collect_events(orchestrator.run(GenerationMode.EDIT))

        views = orchestrator.state.generated_views
        assert [v.view for v in views] == ["front", "side"]
        assert orchestrator.state.error is None
        assert orchestrator.state.base_description == "A red sports car"
        assert events[-1].kind == "finished"

    def test_event_sequence(self, quota):
        orchestrator = make_orchestrator(quota, views=("front", "side"))

        kinds = [e.kind for e in collect_events(orchestrator.run("edit"))]

        assert kinds == [
            "started",
            "step",
            "description",
            "step",
            "progress",
            "view",
            "progress",
            "view",
            "finished",
        ]

    def test_steps_and_progress_published(self, quota):
        orchestrator = make_orchestrator(quota, views=("front", "side"))

        events = collect_events(orchestrator.run("edit"))

        steps = [e.state.step for e in events if e.kind == "step"]
        assert steps == [RunStep.ANALYZING, RunStep.GENERATING]
        progress = [e.state.progress_message for e in events if e.kind == "progress"]
        assert progress == ["Generating: front", "Generating: side"]
        assert all(e.state.is_loading for e in events[:-1])

    def test_partial_results_published_incrementally(self, quota):
        orchestrator = make_orchestrator(quota, views=("front", "side", "back"))

        events = collect_events(orchestrator.run("edit"))

        counts = [len(e.state.generated_views) for e in events if e.kind == "view"]
        assert counts == [1, 2, 3]

    def test_snapshots_are_immutable_copies(self, quota):
        orchestrator = make_orchestrator(quota, views=("front", "side"))

        events = collect_events(orchestrator.run("edit"))

        first_view_event = next(e for e in events if e.kind == "view")
        assert isinstance(first_view_event.state.generated_views, tuple)
        assert len(first_view_event.state.generated_views) == 1

    def test_flags_cleared_on_completion(self, quota):
        orchestrator = make_orchestrator(quota)

        events = collect_events(orchestrator.run("edit"))

        final = events[-1].state
        assert not final.is_loading
        assert final.step is None
        assert final.progress_message is None

    def test_consumes_exactly_one_credit(self, quota):
        orchestrator = make_orchestrator(quota, views=("a", "b", "c"))
        collect_events(orchestrator.run("edit"))
        assert quota.used_credits == 1

    def test_new_run_clears_previous_results_and_error(self, quota):
        orchestrator = make_orchestrator(quota, views=("front",))
        orchestrator.state.generated_views = [GeneratedView("old", "data:x;base64,y")]
        orchestrator.state.error = "old error"

        events = collect_events(orchestrator.run("edit"))

        started = events[0]
        assert started.kind == "started"
        assert started.state.generated_views == ()
        assert started.state.error is None


class TestDelay:

    def test_delay_between_views_only(self, quota):
        sleeper = RecordingSleep()
        orchestrator = make_orchestrator(quota, views=("a", "b", "c"), sleep=sleeper)

        collect_events(orchestrator.run("edit"))

        assert sleeper.delays == [1.0, 1.0]

    def test_no_delay_after_failure(self, quota):
        sleeper = RecordingSleep()
        client = FakeAIClient(fail_at=0)
        orchestrator = make_orchestrator(quota, client=client, views=("a", "b"), sleep=sleeper)

        collect_events(orchestrator.run("edit"))

        assert sleeper.delays == []


class TestFailures:

    def test_second_of_three_fails(self, quota):
        client = FakeAIClient(fail_at=1)
        orchestrator = make_orchestrator(quota, client=client, views=("front", "side", "back"))

        events = collect_events(orchestrator.run("edit"))

        views = orchestrator.state.generated_views
        assert [v.view for v in views] == ["front"]
        assert len(client.generate_calls) == 2
        assert '"side"' in orchestrator.state.error
        assert "The process has been stopped." in orchestrator.state.error
        assert [e.kind for e in events[-2:]] == ["error", "finished"]
        assert quota.used_credits == 1

    def test_view_error_message_format(self, quota):
        client = FakeAIClient(fail_at=0)
        orchestrator = make_orchestrator(quota, client=client, views=("front",))

        collect_events(orchestrator.run("edit"))

        prompt = client.generate_calls[0][1]
        expected = format_view_error(
            "front", f'Failed to generate view for prompt: "{prompt}"'
        )
        assert orchestrator.state.error == expected

    def test_unexpected_view_exception_is_recovered(self, quota):
        class BrokenClient(FakeAIClient):
            def generate_view(self, image_data_url, prompt, mode):
                raise RuntimeError("socket closed")

        orchestrator = make_orchestrator(quota, client=BrokenClient(), views=("front",))

        events = collect_events(orchestrator.run("edit"))

        assert events[-2].kind == "error"
        assert orchestrator.state.error == format_view_error("front", "socket closed")

    def test_analysis_failure_aborts(self, quota):
        client = FakeAIClient(
            describe_error=AnalysisError("Could not analyze the image. Please try another one.")
        )
        orchestrator = make_orchestrator(quota, client=client)

        events = collect_events(orchestrator.run("edit"))

        assert orchestrator.state.error == "Could not analyze the image. Please try another one."
        assert orchestrator.state.base_description is None
        assert client.generate_calls == []
        assert quota.used_credits == 1
        assert [e.kind for e in events] == ["started", "step", "error", "finished"]
        assert not orchestrator.state.is_loading

    def test_description_kept_after_view_failure(self, quota):
        client = FakeAIClient(fail_at=0)
        orchestrator = make_orchestrator(quota, client=client)

        collect_events(orchestrator.run("edit"))

        assert orchestrator.state.base_description == "A red sports car"


class TestModesAndPrompts:

    def test_edit_mode_passes_source_image(self, quota):
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client, views=("front",))

        collect_events(orchestrator.run("edit"))

        image, prompt, mode = client.generate_calls[0]
        assert image == IMAGE
        assert mode is GenerationMode.EDIT

    def test_generate_mode_sends_prompt_only(self, quota):
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client, views=("front",))

        collect_events(orchestrator.run("generate"))

        image, prompt, mode = client.generate_calls[0]
        assert image is None
        assert mode is GenerationMode.GENERATE

    def test_prompt_combines_description_and_view(self, quota):
        client = FakeAIClient(description="A blue teapot")
        orchestrator = make_orchestrator(quota, client=client, views=("Front", "Top View"))

        collect_events(orchestrator.run("edit"))

        prompts = [call[1] for call in client.generate_calls]
        assert prompts == [
            "A blue teapot, front view, detailed, cinematic lighting, 4k, trending on artstation",
            "A blue teapot, top view, detailed, cinematic lighting, 4k, trending on artstation",
        ]

    def test_unknown_mode_rejected(self, quota):
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client)

        events = collect_events(orchestrator.run("sketch"))

        assert [e.kind for e in events] == ["rejected"]
        assert events[0].state.error == "Unknown generation mode: sketch"
        assert quota.used_credits == 0
        assert client.describe_calls == []


class FailingStorage(MemoryStorage):

    def set_item(self, key, value):
        raise OSError("disk full")


class TestQuotaPersistenceFailure:

    def test_write_failure_ends_run_with_error(self):
        quota = QuotaStore.load(FailingStorage())
        client = FakeAIClient()
        orchestrator = make_orchestrator(quota, client=client)

        events = collect_events(orchestrator.run("edit"))

        assert [e.kind for e in events] == ["error", "finished"]
        assert orchestrator.state.error == "disk full"
        assert orchestrator.state.is_loading is False
        assert orchestrator.state.step is None
        assert client.describe_calls == []
