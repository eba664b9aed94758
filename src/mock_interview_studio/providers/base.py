"""
Capability interfaces for the external generation stages.

The orchestrator only depends on these abstract classes; concrete adapters
(Ollama, Piper, Replicate, S3, ...) and test fakes are injected through
constructors.
"""

from abc import ABC, abstractmethod
from typing import Any

from mock_interview_studio.orchestrator.schemas import ChatMessage, RenderParams, SamplingParams


class Provider(ABC):
    """Base for every external capability."""

    async def close(self) -> None:
        """Release network clients or other resources. Nothing to release by default."""
        return None


class TextReplyGenerator(Provider):
    """Generates the interviewer's next reply."""

    @abstractmethod
    async def generate(self, messages: list[ChatMessage], sampling: SamplingParams) -> str:
        """
        Generate a reply for a conversation.

        Args:
            messages: System prompt, history and the new user message.
            sampling: Sampling policy.

        Returns:
            Reply text. May be blank; the caller decides what that means.
        """
        ...


class SpeechSynthesizer(Provider):
    """Turns reply text into audio."""

    content_type: str = "audio/mpeg"
    file_extension: str = "mp3"

    @abstractmethod
    async def synthesize(self, text: str, lang: str = "en") -> bytes | dict[str, Any]:
        """
        Synthesize speech.

        Args:
            text: Text to speak.
            lang: Language code.

        Returns:
            Raw audio bytes, or a wrapper object holding base64 audio under "audio".
        """
        ...


class VideoRenderer(Provider):
    """Animates an avatar image with an audio track."""

    @abstractmethod
    async def render(
        self,
        avatar_image_url: str,
        audio_url: str,
        params: RenderParams,
    ) -> Any:
        """
        Render a talking-head video.

        Args:
            avatar_image_url: Reference portrait to animate.
            audio_url: Publicly reachable audio track.
            params: Render options.

        Returns:
            A URL string, an object/dict with a "url" field, or a job handle
            whose url() (sync or async) resolves to the URL.
        """
        ...


class ArtifactStore(Provider):
    """Durable byte store reachable by URL."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under a key, overwriting any previous value.

        Returns:
            Public URL of the stored object.
        """
        ...


class ArtifactFetcher(Provider):
    """Downloads bytes from a URL."""

    @abstractmethod
    async def fetch(self, url: str) -> bytes:
        """
        Download the resource at url.

        Raises:
            RenderFetchError: On transport failure or a non-2xx response.
        """
        ...
