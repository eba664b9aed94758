"""
Tests for the provider adapters.

HTTP adapters are exercised against httpx.MockTransport; S3 uploads use a
mocked aioboto3 client.
"""

import base64
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from mock_interview_studio.orchestrator.errors import RenderFetchError
from mock_interview_studio.orchestrator.schemas import ChatMessage, RenderParams, SamplingParams
from mock_interview_studio.providers.artifact_store import (
    HttpArtifactFetcher,
    LocalArtifactStore,
    S3ArtifactStore,
)
from mock_interview_studio.providers.llm_client import OllamaError, OllamaReplyGenerator
from mock_interview_studio.providers.renderer import (
    PredictionHandle,
    RenderJobError,
    ReplicateVideoRenderer,
)
from mock_interview_studio.providers.tts import HttpSpeechSynthesizer, PiperSpeechSynthesizer, TTSConfig


def _client(handler, base_url: str = "http://testserver") -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


class TestOllamaReplyGenerator:
    """Tests for the Ollama chat adapter."""

    @pytest.mark.asyncio
    async def test_generate_posts_chat_request(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/chat"
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "model": "llama3.1:8b",
                    "message": {"role": "assistant", "content": "Tell me about a conflict you resolved."},
                    "done_reason": "stop",
                    "prompt_eval_count": 40,
                    "eval_count": 12,
                },
            )

        generator = OllamaReplyGenerator(model="llama3.1:8b", client=_client(handler))
        messages = [
            ChatMessage(role="system", content="You are an interviewer."),
            ChatMessage(role="user", content="Hi, I'm Sam."),
        ]

        reply = await generator.generate(messages, SamplingParams(temperature=0.5, top_p=0.8, max_tokens=120))

        assert reply == "Tell me about a conflict you resolved."
        payload = seen[0]
        assert payload["model"] == "llama3.1:8b"
        assert payload["stream"] is False
        assert payload["messages"][1] == {"role": "user", "content": "Hi, I'm Sam."}
        assert payload["options"] == {"temperature": 0.5, "top_p": 0.8, "num_predict": 120}
        await generator.close()

    @pytest.mark.asyncio
    async def test_chat_reports_usage(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"message": {"content": "Next question."}, "prompt_eval_count": 7, "eval_count": 3},
            )

        generator = OllamaReplyGenerator(model="m", client=_client(handler))

        response = await generator.chat([ChatMessage(role="user", content="hi")], SamplingParams())

        assert response.content == "Next question."
        assert response.usage == {"prompt_eval_count": 7, "eval_count": 3}
        assert response.model == "m"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] < 3:
                return httpx.Response(503, text="model loading")
            return httpx.Response(200, json={"message": {"content": "Ready now."}})

        generator = OllamaReplyGenerator(model="m", max_retries=2, client=_client(handler))

        assert await generator.generate([ChatMessage(role="user", content="hi")], SamplingParams()) == "Ready now."
        assert attempts["n"] == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            return httpx.Response(500, text="boom")

        generator = OllamaReplyGenerator(model="m", max_retries=1, client=_client(handler))

        with pytest.raises(OllamaError) as exc_info:
            await generator.generate([ChatMessage(role="user", content="hi")], SamplingParams())

        assert attempts["n"] == 2
        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "boom"

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        generator = OllamaReplyGenerator(model="m", max_retries=0, client=_client(handler))

        with pytest.raises(OllamaError, match="connection refused"):
            await generator.generate([ChatMessage(role="user", content="hi")], SamplingParams())


class TestHttpSpeechSynthesizer:
    """Tests for the HTTP TTS adapter."""

    @pytest.mark.asyncio
    async def test_binary_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"text": "Hello there", "lang": "en"}
            return httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"})

        synthesizer = HttpSpeechSynthesizer("http://testserver/tts", client=_client(handler))

        assert await synthesizer.synthesize("Hello there") == b"ID3audio"

    @pytest.mark.asyncio
    async def test_json_response_is_passed_through(self) -> None:
        encoded = base64.b64encode(b"audio").decode()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"audio": encoded})

        synthesizer = HttpSpeechSynthesizer("http://testserver/tts", client=_client(handler))

        assert await synthesizer.synthesize("Hola", lang="es") == {"audio": encoded}

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        synthesizer = HttpSpeechSynthesizer("http://testserver/tts", client=_client(handler))

        with pytest.raises(httpx.HTTPStatusError):
            await synthesizer.synthesize("Hello")


class TestPiperSpeechSynthesizer:
    """Tests for the piper CLI adapter."""

    def test_content_type_is_wav(self) -> None:
        synthesizer = PiperSpeechSynthesizer()

        assert synthesizer.content_type == "audio/wav"
        assert synthesizer.file_extension == "wav"

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        synthesizer = PiperSpeechSynthesizer(TTSConfig(piper_bin="definitely-not-piper-xyz", model_path="v.onnx"))

        with pytest.raises(RuntimeError, match="piper CLI not found"):
            await synthesizer.synthesize("Hello")


class TestReplicateVideoRenderer:
    """Tests for the Replicate adapter."""

    @pytest.mark.asyncio
    async def test_inline_success(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/predictions"
            assert request.headers["Prefer"] == "wait"
            seen.append(json.loads(request.content))
            return httpx.Response(
                201,
                json={"id": "pred-1", "status": "succeeded", "output": "https://replicate.delivery/out.mp4"},
            )

        renderer = ReplicateVideoRenderer("token", "v123", client=_client(handler))

        output = await renderer.render("https://cdn/avatar.png", "https://cdn/reply.mp3", RenderParams())

        assert output == {"url": "https://replicate.delivery/out.mp4", "id": "pred-1"}
        body = seen[0]
        assert body["version"] == "v123"
        assert body["input"]["driven_audio"] == "https://cdn/reply.mp3"
        assert body["input"]["source_image"] == "https://cdn/avatar.png"
        assert body["input"]["facerender"] == "facevid2vid"
        assert body["input"]["still_mode"] is True

    @pytest.mark.asyncio
    async def test_pending_prediction_is_polled(self) -> None:
        statuses = iter(["processing", "succeeded"])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"id": "pred-2", "status": "starting"})
            assert request.url.path == "/v1/predictions/pred-2"
            status = next(statuses)
            body = {"id": "pred-2", "status": status}
            if status == "succeeded":
                body["output"] = "https://replicate.delivery/late.mp4"
            return httpx.Response(200, json=body)

        renderer = ReplicateVideoRenderer("token", "v123", poll_interval_s=0, client=_client(handler))

        handle = await renderer.render("https://cdn/avatar.png", "https://cdn/reply.mp3", RenderParams())

        assert isinstance(handle, PredictionHandle)
        assert handle.id == "pred-2"
        assert await handle.url() == "https://replicate.delivery/late.mp4"

    @pytest.mark.asyncio
    async def test_failed_prediction(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": "pred-3", "status": "failed", "error": "NSFW content"})

        renderer = ReplicateVideoRenderer("token", "v123", client=_client(handler))

        with pytest.raises(RenderJobError, match="NSFW content") as exc_info:
            await renderer.render("https://cdn/avatar.png", "https://cdn/reply.mp3", RenderParams())
        assert exc_info.value.job_id == "pred-3"

    @pytest.mark.asyncio
    async def test_polled_prediction_canceled(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "pred-4", "status": "canceled"})

        handle = PredictionHandle("pred-4", _client(handler), poll_interval_s=0)

        with pytest.raises(RenderJobError, match="canceled"):
            await handle.url()

    @pytest.mark.asyncio
    async def test_polling_gives_up(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "pred-5", "status": "processing"})

        handle = PredictionHandle("pred-5", _client(handler), poll_interval_s=0, max_polls=3)

        with pytest.raises(RenderJobError, match="did not finish after 3 polls"):
            await handle.url()

    def test_requires_token(self) -> None:
        with pytest.raises(ValueError, match="REPLICATE_API_TOKEN"):
            ReplicateVideoRenderer("", "v123")


class TestHttpArtifactFetcher:
    """Tests for downloading rendered videos."""

    @pytest.mark.asyncio
    async def test_fetch(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"mp4-bytes")

        fetcher = HttpArtifactFetcher(client=_client(handler))

        assert await fetcher.fetch("http://testserver/out.mp4") == b"mp4-bytes"

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        fetcher = HttpArtifactFetcher(client=_client(handler))

        with pytest.raises(RenderFetchError, match="HTTP 404"):
            await fetcher.fetch("http://testserver/missing.mp4")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = HttpArtifactFetcher(client=_client(handler))

        with pytest.raises(RenderFetchError, match="Failed to download rendered video"):
            await fetcher.fetch("http://testserver/slow.mp4")


class TestLocalArtifactStore:
    """Tests for filesystem artifact storage."""

    @pytest.mark.asyncio
    async def test_put_and_read(self, tmp_path: Path) -> None:
        store = LocalArtifactStore(str(tmp_path / "artifacts"), "http://localhost:8000/media/")

        url = await store.put("sessions/1/audio/100.mp3", b"audio", "audio/mpeg")

        assert url == "http://localhost:8000/media/sessions/1/audio/100.mp3"
        assert (tmp_path / "artifacts" / "sessions" / "1" / "audio" / "100.mp3").read_bytes() == b"audio"
        assert store.read("sessions/1/audio/100.mp3") == b"audio"

    @pytest.mark.asyncio
    async def test_rejects_escaping_keys(self, tmp_path: Path) -> None:
        store = LocalArtifactStore(str(tmp_path / "artifacts"), "http://localhost:8000/media")

        with pytest.raises(ValueError, match="escapes"):
            await store.put("../outside.mp4", b"x", "video/mp4")

    def test_read_missing(self, tmp_path: Path) -> None:
        store = LocalArtifactStore(str(tmp_path), "http://localhost:8000/media")

        with pytest.raises(FileNotFoundError):
            store.read("sessions/1/videos/nope.mp4")


class TestS3ArtifactStore:
    """Tests for S3 artifact storage."""

    @pytest.mark.asyncio
    async def test_put_uploads_with_content_type(self) -> None:
        mock_client = AsyncMock()
        mock_client.put_object = AsyncMock(return_value={"ETag": '"abc"'})
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_session = MagicMock()
        mock_session.client.return_value = mock_client

        store = S3ArtifactStore("interview-media", "https://media.example.com", session=mock_session)

        url = await store.put("sessions/4/videos/5.mp4", b"video", "video/mp4")

        assert url == "https://media.example.com/sessions/4/videos/5.mp4"
        mock_session.client.assert_called_once_with("s3")
        mock_client.put_object.assert_awaited_once_with(
            Bucket="interview-media",
            Key="sessions/4/videos/5.mp4",
            Body=b"video",
            ContentType="video/mp4",
        )

    def test_requires_bucket(self) -> None:
        with pytest.raises(ValueError, match="S3_BUCKET"):
            S3ArtifactStore("", "https://media.example.com", session=MagicMock())
