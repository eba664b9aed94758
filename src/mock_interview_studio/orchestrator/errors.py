"""
Error taxonomy for session operations and the generation pipeline.

Each exception carries an ErrorKind and a human-readable detail so the
service boundary can turn it into a structured failure without guessing.
"""

from mock_interview_studio.orchestrator.schemas import ErrorKind


class InterviewError(Exception):
    """Base class for all session and pipeline failures."""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(InterviewError):
    """The session (or turn) does not exist for this caller."""

    kind = ErrorKind.NOT_FOUND


class InvalidStateError(InterviewError):
    """The operation is illegal for the session's current status."""

    kind = ErrorKind.INVALID_STATE


class ValidationError(InterviewError):
    """The request itself is malformed (e.g. blank user text)."""

    kind = ErrorKind.VALIDATION


class GenerationEmptyError(InterviewError):
    """The reply generator returned blank text."""

    kind = ErrorKind.GENERATION_EMPTY


class SynthesisFormatError(InterviewError):
    """The speech synthesizer returned a payload of unexpected shape."""

    kind = ErrorKind.SYNTHESIS_FORMAT


class RenderFormatError(InterviewError):
    """The video renderer returned an output of unexpected shape."""

    kind = ErrorKind.RENDER_FORMAT


class RenderFetchError(InterviewError):
    """The rendered video could not be produced or downloaded."""

    kind = ErrorKind.RENDER_FETCH


class StageError(InterviewError):
    """A provider call failed with an unexpected exception."""

    kind = ErrorKind.STAGE_ERROR

    def __init__(self, stage: str, detail: str) -> None:
        super().__init__(f"{stage} failed: {detail}")
        self.stage = stage


class StageTimeoutError(InterviewError):
    """A pipeline stage exceeded its time budget."""

    kind = ErrorKind.STAGE_TIMEOUT

    def __init__(self, stage: str, timeout_s: float) -> None:
        super().__init__(f"{stage} timed out after {timeout_s:.1f}s")
        self.stage = stage
        self.timeout_s = timeout_s


class CreateError(InterviewError):
    """A new session could not be written."""

    kind = ErrorKind.CREATE


class PersistenceError(InterviewError):
    """A store read or write failed."""

    kind = ErrorKind.PERSISTENCE
