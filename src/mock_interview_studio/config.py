"""
Application configuration using pydantic-settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/mock_interview.db",
        description="SQLAlchemy async connection string (sqlite+aiosqlite or postgresql+asyncpg)",
    )

    # Text reply generation (Ollama)
    llm_base_url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the Ollama HTTP API",
    )
    llm_model_name: str = Field(
        default="llama3.1:8b",
        description="Ollama model name used for interviewer replies",
    )
    llm_timeout: int = Field(
        default=120,
        description="Timeout in seconds for LLM requests",
    )
    llm_max_retries: int = Field(
        default=1,
        description="Number of retries on LLM failure",
    )
    llm_temperature: float = Field(default=0.7, description="Sampling temperature")
    llm_top_p: float = Field(default=0.9, description="Nucleus sampling cutoff")
    llm_max_tokens: int = Field(default=200, description="Maximum tokens per reply")

    # Speech synthesis
    tts_backend: Literal["piper", "http"] = Field(
        default="piper",
        description="Speech synthesizer implementation",
    )
    piper_bin: str = Field(default="piper", description="Path or name of the Piper TTS binary")
    piper_model: str | None = Field(default=None, description="Path to the Piper voice model (*.onnx)")
    tts_endpoint: str = Field(
        default="http://localhost:5002/api/tts",
        description="Endpoint for the HTTP speech synthesizer",
    )
    tts_language: str = Field(default="en", description="Language passed to the synthesizer")

    # Video rendering (Replicate)
    replicate_api_token: str = Field(default="", description="Replicate API token")
    replicate_model_version: str = Field(
        default="a519cc0cfebaaeade068b23899165a11ec76aaa1d2b313d40d214f204ec957a3",
        description="Talking-head model version on Replicate",
    )
    replicate_poll_interval_s: float = Field(
        default=2.0,
        description="Seconds between prediction status polls",
    )
    replicate_timeout: int = Field(
        default=60,
        description="Timeout in seconds for a single Replicate HTTP request",
    )
    avatar_image_url: str = Field(
        default="https://replicate.delivery/pbxt/IkgW9tngATq608Qf6haUXDpg81s5YBJfS9GaBiCFjdKXk4F5/art_1.png",
        description="Reference avatar image animated by the renderer",
    )

    # Artifact storage
    artifact_backend: Literal["local", "s3"] = Field(
        default="local",
        description="Where generated audio and video are stored",
    )
    artifact_base_path: str = Field(
        default="./data/artifacts",
        description="Directory for the local artifact store",
    )
    artifact_public_url: str = Field(
        default="http://localhost:8080/artifacts",
        description="Public base URL under which stored artifacts are reachable",
    )
    s3_bucket: str | None = Field(default=None, description="Bucket for the S3 artifact store")
    s3_region: str | None = Field(default=None, description="Region of the S3 bucket")

    # Pipeline
    stage_timeout_s: float | None = Field(
        default=None,
        description="Optional per-stage timeout in seconds for the generation pipeline",
    )

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
