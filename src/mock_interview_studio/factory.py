"""
Wiring of the session service from application settings.
"""

import logging

from mock_interview_studio.config import Settings, get_settings
from mock_interview_studio.db.database import Database
from mock_interview_studio.orchestrator.pipeline import ResponsePipeline
from mock_interview_studio.orchestrator.schemas import SamplingParams
from mock_interview_studio.orchestrator.session_service import SessionService
from mock_interview_studio.providers.artifact_store import (
    HttpArtifactFetcher,
    LocalArtifactStore,
    S3ArtifactStore,
)
from mock_interview_studio.providers.base import ArtifactStore, SpeechSynthesizer
from mock_interview_studio.providers.llm_client import OllamaReplyGenerator
from mock_interview_studio.providers.renderer import ReplicateVideoRenderer
from mock_interview_studio.providers.tts import HttpSpeechSynthesizer, PiperSpeechSynthesizer, TTSConfig

logger = logging.getLogger(__name__)


def build_synthesizer(settings: Settings) -> SpeechSynthesizer:
    """Create the configured speech synthesizer."""
    if settings.tts_backend == "http":
        return HttpSpeechSynthesizer(settings.tts_endpoint)
    return PiperSpeechSynthesizer(TTSConfig(piper_bin=settings.piper_bin, model_path=settings.piper_model))


def build_artifact_store(settings: Settings) -> ArtifactStore:
    """Create the configured artifact store."""
    if settings.artifact_backend == "s3":
        return S3ArtifactStore(
            bucket_name=settings.s3_bucket or "",
            public_url=settings.artifact_public_url,
            region=settings.s3_region,
        )
    return LocalArtifactStore(settings.artifact_base_path, settings.artifact_public_url)


def build_pipeline(settings: Settings | None = None) -> ResponsePipeline:
    """
    Create the generation pipeline with the configured providers.

    Args:
        settings: Settings to use (defaults to the cached application settings).

    Returns:
        A ready pipeline.
    """
    settings = settings or get_settings()
    return ResponsePipeline(
        reply_generator=OllamaReplyGenerator(
            model=settings.llm_model_name,
            base_url=settings.llm_base_url,
            max_retries=settings.llm_max_retries,
            timeout=settings.llm_timeout,
        ),
        synthesizer=build_synthesizer(settings),
        renderer=ReplicateVideoRenderer(
            api_token=settings.replicate_api_token,
            model_version=settings.replicate_model_version,
            timeout=settings.replicate_timeout,
            poll_interval_s=settings.replicate_poll_interval_s,
        ),
        artifact_store=build_artifact_store(settings),
        fetcher=HttpArtifactFetcher(),
        avatar_image_url=settings.avatar_image_url,
        sampling=SamplingParams(
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            max_tokens=settings.llm_max_tokens,
        ),
        language=settings.tts_language,
        stage_timeout_s=settings.stage_timeout_s,
    )


async def build_service(settings: Settings | None = None) -> tuple[SessionService, Database]:
    """
    Create the database (schema included) and the session service.

    Returns:
        The service and the database it writes to; close both when done.
    """
    settings = settings or get_settings()
    database = Database(settings.database_url, echo=settings.debug)
    await database.init_schema()
    logger.info("Session service ready")
    return SessionService(database, build_pipeline(settings)), database
