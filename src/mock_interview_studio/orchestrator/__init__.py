"""
Orchestrator module for interview sessions and the reply generation pipeline.
"""

from mock_interview_studio.orchestrator.errors import (
    CreateError,
    GenerationEmptyError,
    InterviewError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    RenderFetchError,
    RenderFormatError,
    StageError,
    StageTimeoutError,
    SynthesisFormatError,
    ValidationError,
)
from mock_interview_studio.orchestrator.pipeline import (
    INTERVIEWER_SYSTEM_PROMPT,
    PipelineArtifacts,
    ResponsePipeline,
)
from mock_interview_studio.orchestrator.schemas import (
    ChatMessage,
    ErrorInfo,
    ErrorKind,
    OperationResult,
    RenderParams,
    SamplingParams,
    SessionDetail,
    SessionRecord,
    SessionStatus,
    TurnRecord,
    TurnResult,
)
from mock_interview_studio.orchestrator.session_actor import SessionActor
from mock_interview_studio.orchestrator.session_service import (
    CLIENT_HISTORY_SCOPE,
    AccountSessions,
    ActorDirectory,
    SessionService,
)

__all__ = [
    "AccountSessions",
    "ActorDirectory",
    "CLIENT_HISTORY_SCOPE",
    "SessionActor",
    "SessionService",
    "INTERVIEWER_SYSTEM_PROMPT",
    "PipelineArtifacts",
    "ResponsePipeline",
    "ChatMessage",
    "ErrorInfo",
    "ErrorKind",
    "OperationResult",
    "RenderParams",
    "SamplingParams",
    "SessionDetail",
    "SessionRecord",
    "SessionStatus",
    "TurnRecord",
    "TurnResult",
    "CreateError",
    "GenerationEmptyError",
    "InterviewError",
    "InvalidStateError",
    "NotFoundError",
    "PersistenceError",
    "RenderFetchError",
    "RenderFormatError",
    "StageError",
    "StageTimeoutError",
    "SynthesisFormatError",
    "ValidationError",
]
