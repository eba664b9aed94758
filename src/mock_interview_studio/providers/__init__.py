"""
External generation stages and artifact storage.

Abstract capability interfaces plus the concrete adapters wired up from
settings.
"""

from mock_interview_studio.providers.artifact_store import (
    HttpArtifactFetcher,
    LocalArtifactStore,
    S3ArtifactStore,
)
from mock_interview_studio.providers.base import (
    Provider,
    ArtifactFetcher,
    ArtifactStore,
    SpeechSynthesizer,
    TextReplyGenerator,
    VideoRenderer,
)
from mock_interview_studio.providers.llm_client import (
    DEFAULT_OLLAMA_MODEL,
    LLMResponse,
    OllamaError,
    OllamaReplyGenerator,
)
from mock_interview_studio.providers.renderer import (
    PredictionHandle,
    RenderJobError,
    ReplicateVideoRenderer,
)
from mock_interview_studio.providers.tts import (
    HttpSpeechSynthesizer,
    PiperSpeechSynthesizer,
    TTSConfig,
)

__all__ = [
    "Provider",
    "ArtifactFetcher",
    "ArtifactStore",
    "SpeechSynthesizer",
    "TextReplyGenerator",
    "VideoRenderer",
    "DEFAULT_OLLAMA_MODEL",
    "LLMResponse",
    "OllamaError",
    "OllamaReplyGenerator",
    "HttpSpeechSynthesizer",
    "PiperSpeechSynthesizer",
    "TTSConfig",
    "PredictionHandle",
    "RenderJobError",
    "ReplicateVideoRenderer",
    "HttpArtifactFetcher",
    "LocalArtifactStore",
    "S3ArtifactStore",
]
