"""Shared fixtures: config isolation, sample images, fake provider and transport."""
import asyncio
import io
import os

import pytest
from PIL import Image

import config as config_module
from frontend.cache import MemoryStore, ResultCache
from server.provider import ModelProvider
from shared.schemas import AnalysisMetadata, AnalysisResult


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Every test starts from a fresh Config built from a clean environment."""
    for key in list(os.environ):
        if key.startswith("VISION_DEMO_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    config_module.reset_config()
    yield
    config_module.reset_config()


def _encode_jpeg(image: Image.Image, quality: int = 90) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _encode_jpeg(Image.new("RGB", (64, 48), (200, 30, 30)))


@pytest.fixture
def other_jpeg_bytes() -> bytes:
    return _encode_jpeg(Image.new("RGB", (64, 48), (30, 30, 200)))


@pytest.fixture
def photo_jpeg_bytes() -> bytes:
    """A noisy photo-sized JPEG (a few hundred KB, well under 2 MiB)."""
    noise = Image.frombytes("RGB", (420, 420), os.urandom(420 * 420 * 3))
    return _encode_jpeg(noise, quality=95)


class FakeProvider(ModelProvider):
    """Scriptable provider: returns text, raises, or hangs for ``delay`` seconds."""

    def __init__(self, text="A red bicycle.", error=None, delay=0.0, model_name="fake-vision-1"):
        self.text = text
        self.error = error
        self.delay = delay
        self.model_name = model_name
        self.calls = []

    async def generate(self, prompt, image_bytes, mime_type):
        self.calls.append((prompt, image_bytes, mime_type))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def make_provider():
    return FakeProvider


class FakeTransport:
    """Stand-in for AnalysisClient: returns queued results or raises queued errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def analyze(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def result_cache(memory_store):
    return ResultCache(memory_store)


@pytest.fixture
def bicycle_result() -> AnalysisResult:
    return AnalysisResult(
        text="A red bicycle.",
        metadata=AnalysisMetadata(
            model="fake-vision-1",
            processing_time=42,
            task="analysis",
            timestamp=1_700_000_000_000,
        ),
    )
