"""Shared fixtures and fake stage clients for tests."""

import asyncio
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from mock_interview_studio.db.database import Database
from mock_interview_studio.orchestrator.pipeline import ResponsePipeline
from mock_interview_studio.orchestrator.schemas import ChatMessage, RenderParams, SamplingParams
from mock_interview_studio.orchestrator.session_service import SessionService
from mock_interview_studio.providers.base import (
    ArtifactFetcher,
    ArtifactStore,
    SpeechSynthesizer,
    TextReplyGenerator,
    VideoRenderer,
)

AVATAR_URL = "https://cdn.example.com/avatars/interviewer.png"
RENDERED_URL = "https://render.example.com/outputs/clip.mp4"


class ClosingFake:
    closed = False

    async def close(self) -> None:
        self.closed = True


class FakeReplyGenerator(ClosingFake, TextReplyGenerator):
    def __init__(self, reply: str = "Thanks. What was the hardest part of that project?") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.delay_s = 0.0
        self.calls: list[list[ChatMessage]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, messages: list[ChatMessage], sampling: SamplingParams) -> str:
        self.calls.append(list(messages))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay_s)
            if self.error is not None:
                raise self.error
            return self.reply
        finally:
            self.in_flight -= 1


class FakeSynthesizer(ClosingFake, SpeechSynthesizer):
    def __init__(self, payload: Any = b"ID3-fake-mp3") -> None:
        self.payload = payload
        self.error: Exception | None = None
        self.spoken: list[str] = []

    async def synthesize(self, text: str, lang: str = "en") -> Any:
        self.spoken.append(text)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeRenderer(ClosingFake, VideoRenderer):
    def __init__(self, output: Any = RENDERED_URL) -> None:
        self.output = output
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    async def render(self, avatar_image_url: str, audio_url: str, params: RenderParams) -> Any:
        self.calls.append((avatar_image_url, audio_url))
        if self.error is not None:
            raise self.error
        return self.output


class InMemoryArtifactStore(ClosingFake, ArtifactStore):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_on_prefix: str | None = None
        self.url_overrides: dict[str, Any] = {}

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_on_prefix and key.startswith(self.fail_on_prefix):
            raise OSError("bucket unavailable")
        self.objects[key] = (data, content_type)
        for prefix, url in self.url_overrides.items():
            if key.startswith(prefix):
                return url
        return f"https://artifacts.example.com/{key}"


class FakeFetcher(ClosingFake, ArtifactFetcher):
    def __init__(self, data: bytes = b"\x00\x00\x00\x18ftypmp42") -> None:
        self.data = data
        self.error: Exception | None = None
        self.urls: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def reply_generator() -> FakeReplyGenerator:
    return FakeReplyGenerator()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def artifact_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def pipeline(
    reply_generator: FakeReplyGenerator,
    synthesizer: FakeSynthesizer,
    renderer: FakeRenderer,
    artifact_store: InMemoryArtifactStore,
    fetcher: FakeFetcher,
) -> ResponsePipeline:
    return ResponsePipeline(
        reply_generator=reply_generator,
        synthesizer=synthesizer,
        renderer=renderer,
        artifact_store=artifact_store,
        fetcher=fetcher,
        avatar_image_url=AVATAR_URL,
    )


@pytest_asyncio.fixture
async def database(tmp_path: Path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'interviews.db'}")
    await db.init_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def service(database: Database, pipeline: ResponsePipeline):
    svc = SessionService(database, pipeline)
    yield svc
    await svc.aclose()
