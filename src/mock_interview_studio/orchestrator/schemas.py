"""
Pydantic schemas for the orchestrator module.

Defines read models for sessions, turns and rendered videos, the sampling and
render parameters handed to providers, and the tagged result envelope every
exposed operation returns.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class SessionStatus(str, Enum):
    """Lifecycle states of an interview session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class VideoStatus(str, Enum):
    """Render-job states of a generated video."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Failure kinds reported to callers."""

    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    VALIDATION = "ValidationError"
    GENERATION_EMPTY = "GenerationEmpty"
    SYNTHESIS_FORMAT = "SynthesisFormatError"
    RENDER_FORMAT = "RenderFormatError"
    RENDER_FETCH = "RenderFetchError"
    STAGE_ERROR = "StageError"
    STAGE_TIMEOUT = "StageTimeout"
    CREATE = "CreateError"
    PERSISTENCE = "PersistenceError"


class ChatMessage(BaseModel):
    """A message in the conversation sent to the reply generator."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(..., description="Role of the speaker (system, user, assistant)")
    content: str = Field(..., description="Message content")


class SamplingParams(BaseModel):
    """Sampling policy for text reply generation."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    max_tokens: int = Field(default=200, gt=0)


class RenderParams(BaseModel):
    """Talking-head render options passed through to the video renderer."""

    model_config = ConfigDict(frozen=True)

    facerender: str = "facevid2vid"
    pose_style: int = 0
    preprocess: str = "crop"
    still_mode: bool = True
    use_enhancer: bool = True
    use_eyeblink: bool = True
    size_of_image: int = 256
    expression_scale: float = 1.0


class SessionRecord(BaseModel):
    """Snapshot of one interview session."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    account_id: int
    mock_interview_id: int | None = None
    status: SessionStatus
    started_at: datetime
    ended_at: datetime | None = None
    total_turns: int = 0


class TurnRecord(BaseModel):
    """One committed request/response exchange. Never modified after insert."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    session_id: int
    turn_number: int
    user_text: str
    ai_response_text: str
    video_url: str | None = None
    audio_url: str | None = None
    created_at: datetime


class GeneratedVideoRecord(BaseModel):
    """Render bookkeeping for a turn's video artifact."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    session_id: int
    turn_id: int
    storage_key: str
    storage_url: str
    external_job_id: str | None = None
    status: VideoStatus
    created_at: datetime
    completed_at: datetime | None = None


class SessionDetail(SessionRecord):
    """A session together with its full ordered turn history."""

    turns: list[TurnRecord] = Field(default_factory=list)


class TurnResult(BaseModel):
    """Payload returned to the caller after a successful submission."""

    model_config = ConfigDict(frozen=True)

    turn_number: int
    user_text: str
    ai_text: str
    video_url: str
    audio_url: str


class ErrorInfo(BaseModel):
    """Structured failure: a kind plus a human-readable reason."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    detail: str


class OperationResult(BaseModel, Generic[T]):
    """Tagged success/failure envelope returned by every exposed operation."""

    ok: bool
    value: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str) -> OperationResult[T]:
        return cls(ok=False, error=ErrorInfo(kind=kind, detail=detail))

    def unwrap(self) -> T:
        """Return the value or raise RuntimeError carrying the failure reason."""
        if self.error is not None:
            raise RuntimeError(f"{self.error.kind.value}: {self.error.detail}")
        return self.value  # type: ignore[return-value]


def flatten_turns(turns: list[TurnRecord]) -> list[ChatMessage]:
    """
    Convert stored turns into an LLM message history.

    Args:
        turns: Turns ordered by turn number.

    Returns:
        One user message and one assistant message per turn.
    """
    history: list[ChatMessage] = []
    for turn in turns:
        history.append(ChatMessage(role="user", content=turn.user_text))
        history.append(ChatMessage(role="assistant", content=turn.ai_response_text))
    return history
