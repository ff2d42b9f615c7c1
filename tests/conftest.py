from __future__ import annotations

import asyncio
import base64
import io
import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from multiview.api.multimodal.image_input_manager import accept_image
from multiview.core.errors import GenerationError
from multiview.core.session import StudioSession
from multiview.quota.storage import MemoryStorage
from multiview.quota.store import QuotaStore


def make_png(width: int = 4, height: int = 3, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def fake_view_url(index):
    encoded = base64.b64encode(f"view-{index}".encode()).decode()
    return f"data:image/png;base64,{encoded}"


class FakeAIClient:
    """Scripted stand-in for the remote AI adapter."""

    def __init__(self, description="A red sports car", fail_at=None, describe_error=None):
        self.description = description
        self.fail_at = fail_at
        self.describe_error = describe_error
        self.describe_calls = []
        self.generate_calls = []

    def describe(self, image_data_url):
        self.describe_calls.append(image_data_url)
        if self.describe_error is not None:
            raise self.describe_error
        return self.description

    def generate_view(self, image_data_url, prompt, mode):
        index = len(self.generate_calls)
        self.generate_calls.append((image_data_url, prompt, mode))
        if self.fail_at is not None and index == self.fail_at:
            raise GenerationError(f'Failed to generate view for prompt: "{prompt}"')
        return fake_view_url(index)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


async def _collect(agen):
    return [event async for event in agen]


def collect_events(agen):
    return asyncio.run(_collect(agen))


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def upload(png_bytes):
    return accept_image(png_bytes, mime_type="image/png", filename="car.png")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def quota(storage):
    return QuotaStore.load(storage)


@pytest.fixture
def fake_client():
    return FakeAIClient()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def make_session(quota, sleeper):
    def factory(client=None, views=("Front", "Back", "Left", "Right"), mode="edit"):
        return StudioSession(
            quota,
            ai_client=client or FakeAIClient(),
            mode=mode,
            views=views,
            view_delay=1.0,
            sleep=sleeper,
        )
    return factory

