"""
Response generation pipeline.

Runs the strictly sequential chain behind one submitted answer:

    reply text -> speech -> audio upload -> video render -> video download -> video upload

Nothing here touches the database. Any stage failure raises a typed
InterviewError and the caller commits nothing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from mock_interview_studio.orchestrator.errors import (
    GenerationEmptyError,
    InterviewError,
    RenderFetchError,
    StageError,
    StageTimeoutError,
)
from mock_interview_studio.orchestrator.normalization import (
    classify_render_output,
    normalize_speech_output,
    resolve_render_url,
)
from mock_interview_studio.orchestrator.schemas import ChatMessage, RenderParams, SamplingParams

if TYPE_CHECKING:
    from mock_interview_studio.providers.base import (
        ArtifactFetcher,
        ArtifactStore,
        SpeechSynthesizer,
        TextReplyGenerator,
        VideoRenderer,
    )

T = TypeVar("T")

logger = logging.getLogger(__name__)

INTERVIEWER_SYSTEM_PROMPT = """You are a professional job interviewer conducting a mock interview. Your role is to:
- Ask relevant, thoughtful questions about the candidate's experience, skills, and qualifications
- Follow up on their responses with probing questions when appropriate
- Maintain a professional yet conversational tone
- Provide realistic interview scenarios
- Keep responses concise and natural (2-4 sentences typically)
- Transition smoothly between topics

The candidate has just responded. Continue the interview naturally."""

VIDEO_CONTENT_TYPE = "video/mp4"


class ArtifactKeyClock:
    """Millisecond timestamps that never repeat or go backwards."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        stamp = time.time_ns() // 1_000_000
        if stamp <= self._last:
            stamp = self._last + 1
        self._last = stamp
        return stamp


@dataclass(frozen=True)
class PipelineArtifacts:
    """Everything produced for one turn before it is committed."""

    ai_text: str
    audio_key: str
    audio_url: str
    video_key: str
    video_url: str
    external_job_id: str | None = None


class ResponsePipeline:
    """
    Drives the external stages for one user answer.

    All collaborators are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        reply_generator: TextReplyGenerator,
        synthesizer: SpeechSynthesizer,
        renderer: VideoRenderer,
        artifact_store: ArtifactStore,
        fetcher: ArtifactFetcher,
        avatar_image_url: str,
        sampling: SamplingParams | None = None,
        render_params: RenderParams | None = None,
        language: str = "en",
        stage_timeout_s: float | None = None,
        system_prompt: str = INTERVIEWER_SYSTEM_PROMPT,
        clock: ArtifactKeyClock | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            reply_generator: Produces the interviewer reply.
            synthesizer: Speaks the reply.
            renderer: Animates the avatar with the spoken reply.
            artifact_store: Durable store for audio and video.
            fetcher: Downloads the rendered video.
            avatar_image_url: Reference portrait the renderer animates.
            sampling: Sampling policy for the reply generator.
            render_params: Options for the renderer.
            language: Language code for speech synthesis.
            stage_timeout_s: Optional time budget for each external stage.
            system_prompt: Interviewer persona.
            clock: Source of artifact key timestamps.
        """
        self._reply_generator = reply_generator
        self._synthesizer = synthesizer
        self._renderer = renderer
        self._artifact_store = artifact_store
        self._fetcher = fetcher
        self._avatar_image_url = avatar_image_url
        self._sampling = sampling or SamplingParams()
        self._render_params = render_params or RenderParams()
        self._language = language
        self._stage_timeout_s = stage_timeout_s
        self._system_prompt = system_prompt
        self._clock = clock or ArtifactKeyClock()

    def build_messages(self, history: list[ChatMessage], user_text: str) -> list[ChatMessage]:
        """Assemble persona prompt, prior conversation and the new answer."""
        return [
            ChatMessage(role="system", content=self._system_prompt),
            *history,
            ChatMessage(role="user", content=user_text),
        ]

    async def aclose(self) -> None:
        """Close every provider client owned by the pipeline."""
        providers = (
            self._reply_generator,
            self._synthesizer,
            self._renderer,
            self._artifact_store,
            self._fetcher,
        )
        closed: set[int] = set()
        for provider in providers:
            if id(provider) in closed:
                continue
            closed.add(id(provider))
            await provider.close()

    async def _stage(
        self,
        name: str,
        call: Callable[[], Awaitable[T]],
        wrap: Callable[[str, Exception], InterviewError] | None = None,
    ) -> T:
        """Run one stage under the optional timeout, translating provider errors."""
        logger.debug(f"Stage started: {name}")
        try:
            if self._stage_timeout_s is None:
                result = await call()
            else:
                result = await asyncio.wait_for(call(), timeout=self._stage_timeout_s)
        except InterviewError:
            raise
        except asyncio.TimeoutError as e:
            if self._stage_timeout_s is None:
                raise StageError(name, "provider timed out") from e
            raise StageTimeoutError(name, self._stage_timeout_s) from e
        except Exception as e:
            if wrap is not None:
                raise wrap(name, e) from e
            raise StageError(name, str(e) or type(e).__name__) from e
        logger.debug(f"Stage finished: {name}")
        return result

    @staticmethod
    def _require_url(stage: str, url: object) -> str:
        if not isinstance(url, str) or not url.strip():
            raise StageError(stage, f"artifact store returned no usable URL: {url!r}")
        return url

    @staticmethod
    def _render_failure(stage: str, error: Exception) -> InterviewError:
        return RenderFetchError(f"{stage} failed: {str(error) or type(error).__name__}")

    async def run(
        self,
        session_id: int,
        history: list[ChatMessage],
        user_text: str,
    ) -> PipelineArtifacts:
        """
        Produce reply text, audio and video for one answer.

        Args:
            session_id: Session the artifacts are namespaced under.
            history: Prior conversation as user/assistant messages.
            user_text: The candidate's new answer.

        Returns:
            Stored artifact keys and URLs plus the reply text.

        Raises:
            InterviewError: The first stage failure; later stages are not run.
        """
        messages = self.build_messages(history, user_text)

        reply = await self._stage(
            "text generation",
            lambda: self._reply_generator.generate(messages, self._sampling),
        )
        if not reply or not reply.strip():
            raise GenerationEmptyError("AI generated empty response")
        ai_text = reply.strip()

        payload = await self._stage(
            "speech synthesis",
            lambda: self._synthesizer.synthesize(ai_text, self._language),
        )
        audio = normalize_speech_output(payload)

        audio_key = f"sessions/{session_id}/audio/{self._clock.next()}.{self._synthesizer.file_extension}"
        audio_url = self._require_url(
            "audio upload",
            await self._stage(
                "audio upload",
                lambda: self._artifact_store.put(audio_key, audio, self._synthesizer.content_type),
            ),
        )

        render_output = await self._stage(
            "video render",
            lambda: self._renderer.render(self._avatar_image_url, audio_url, self._render_params),
            wrap=self._render_failure,
        )
        classified = classify_render_output(render_output)
        rendered_url = await self._stage(
            "render job",
            lambda: resolve_render_url(classified),
            wrap=self._render_failure,
        )

        video = await self._stage(
            "video download",
            lambda: self._fetcher.fetch(rendered_url),
            wrap=self._render_failure,
        )
        video_key = f"sessions/{session_id}/videos/{self._clock.next()}.mp4"
        video_url = self._require_url(
            "video upload",
            await self._stage(
                "video upload",
                lambda: self._artifact_store.put(video_key, video, VIDEO_CONTENT_TYPE),
            ),
        )

        logger.info(f"Generated reply artifacts for session {session_id}: audio={audio_key} video={video_key}")
        return PipelineArtifacts(
            ai_text=ai_text,
            audio_key=audio_key,
            audio_url=audio_url,
            video_key=video_key,
            video_url=video_url,
            external_job_id=getattr(classified, "job_id", None),
        )
