"""
Interview session service.

Exposes the five session operations (start, submit, get, end, list). Every
operation returns an OperationResult; failures are never raised to the
caller. Operations on an existing session are routed through that session's
SessionActor, so they execute one at a time per session.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Collection, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from mock_interview_studio.db.repository import (
    GeneratedVideoRepository,
    SessionRepository,
    TurnRepository,
)
from mock_interview_studio.orchestrator.errors import (
    CreateError,
    InterviewError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from mock_interview_studio.orchestrator.schemas import (
    ChatMessage,
    ErrorKind,
    OperationResult,
    SessionDetail,
    SessionRecord,
    SessionStatus,
    TurnRecord,
    TurnResult,
    flatten_turns,
)
from mock_interview_studio.orchestrator.session_actor import SessionActor

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from mock_interview_studio.db.database import Database
    from mock_interview_studio.db.models import SessionModel
    from mock_interview_studio.orchestrator.pipeline import ResponsePipeline

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Callers holding this scope may hand in their own conversation history
# instead of having it rebuilt from stored turns.
CLIENT_HISTORY_SCOPE = "history:supply"

HistoryInput = Sequence[Union[ChatMessage, Mapping[str, Any]]]

# Failures after which the session needs no actor: it is missing, foreign or no longer active.
_TERMINAL_KINDS = frozenset({ErrorKind.NOT_FOUND, ErrorKind.INVALID_STATE})


class SessionService:
    """
    Owns the session actors and implements the session operations.

    Sessions are created and listed directly against the store; every
    operation on an existing session goes through its actor.
    """

    def __init__(self, database: Database, pipeline: ResponsePipeline) -> None:
        """
        Initialize the service.

        Args:
            database: Persistent store.
            pipeline: Generation pipeline used by submit_response.
        """
        self._database = database
        self._pipeline = pipeline
        self._actors: dict[int, SessionActor] = {}

    @property
    def active_actor_count(self) -> int:
        """Number of live session actors."""
        return len(self._actors)

    def _actor_for(self, session_id: int) -> SessionActor:
        actor = self._actors.get(session_id)
        if actor is None:
            actor = SessionActor(session_id)
            self._actors[session_id] = actor
        return actor

    async def _retire_actor(self, session_id: int) -> None:
        actor = self._actors.pop(session_id, None)
        if actor is not None:
            await actor.stop()

    async def _release_idle_actor(self, session_id: int) -> None:
        """Drop the actor of a missing or finished session once nothing is queued on it."""
        actor = self._actors.get(session_id)
        if actor is not None and actor.is_idle:
            await self._retire_actor(session_id)

    async def aclose(self) -> None:
        """Drain and stop every session actor, then close the provider clients."""
        actors = list(self._actors.values())
        self._actors.clear()
        for actor in actors:
            await actor.stop()
        await self._pipeline.aclose()

    async def _guard(
        self,
        operation: str,
        call: Awaitable[T],
        store_error: type[InterviewError] = PersistenceError,
    ) -> OperationResult[T]:
        """Await an operation and convert any failure into a result."""
        try:
            return OperationResult.success(await call)
        except InterviewError as e:
            logger.info(f"{operation} failed: {e.kind.value}: {e.detail}")
            return OperationResult.failure(e.kind, e.detail)
        except SQLAlchemyError as e:
            logger.error(f"{operation} failed in the store: {e}", exc_info=True)
            return OperationResult.failure(store_error.kind, f"{operation} failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected error in {operation}: {e}", exc_info=True)
            return OperationResult.failure(store_error.kind, f"{operation} failed: {str(e) or type(e).__name__}")

    @staticmethod
    async def _load_session(
        db: AsyncSession,
        session_id: int,
        account_id: int | None,
        refresh: bool = False,
    ) -> SessionModel:
        session = await SessionRepository(db).get_by_id(session_id, refresh=refresh)
        if session is None or (account_id is not None and session.account_id != account_id):
            raise NotFoundError("Session not found")
        return session

    # ------------------------------------------------------------------
    # StartSession
    # ------------------------------------------------------------------

    async def start_session(
        self,
        account_id: int,
        mock_interview_id: int | None = None,
    ) -> OperationResult[SessionRecord]:
        """
        Create a new active session.

        Args:
            account_id: Owning account.
            mock_interview_id: Optional scheduled interview this session belongs to.

        Returns:
            The new session (status active, no turns), or CreateError.
        """
        return await self._guard(
            "start_session",
            self._start_session(account_id, mock_interview_id),
            store_error=CreateError,
        )

    async def _start_session(self, account_id: int, mock_interview_id: int | None) -> SessionRecord:
        async with self._database.session() as db:
            async with db.begin():
                model = await SessionRepository(db).create_session(account_id, mock_interview_id)
            record = SessionRecord.model_validate(model)
        logger.info(f"Started session {record.id} for account {account_id}")
        return record

    # ------------------------------------------------------------------
    # SubmitResponse
    # ------------------------------------------------------------------

    async def submit_response(
        self,
        session_id: int,
        user_text: str,
        history: HistoryInput | None = None,
        *,
        account_id: int | None = None,
        trust_history: bool = False,
    ) -> OperationResult[TurnResult]:
        """
        Generate the interviewer's reply to an answer and record the turn.

        Args:
            session_id: Target session.
            user_text: The candidate's answer.
            history: Conversation the caller already holds.
            account_id: Restrict to sessions owned by this account.
            trust_history: Use the supplied history verbatim. When False the
                history is always rebuilt from stored turns.

        Returns:
            The committed turn, or a failure. On failure nothing is stored.
        """
        actor = self._actor_for(session_id)
        result = await self._guard(
            "submit_response",
            actor.call(lambda: self._submit(session_id, user_text, history, account_id, trust_history)),
        )
        if result.error is not None and result.error.kind in _TERMINAL_KINDS:
            await self._release_idle_actor(session_id)
        return result

    async def _assemble_history(
        self,
        db: AsyncSession,
        session_id: int,
        history: HistoryInput | None,
        trust_history: bool,
    ) -> list[ChatMessage]:
        if history is not None and trust_history:
            try:
                return [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in history]
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid conversation history: {e.error_count()} malformed message(s)") from e

        if history is not None:
            logger.warning(
                f"Ignoring caller-supplied history for session {session_id}: caller lacks {CLIENT_HISTORY_SCOPE}"
            )
        turns = await TurnRepository(db).list_for_session(session_id)
        return flatten_turns([TurnRecord.model_validate(t) for t in turns])

    async def _submit(
        self,
        session_id: int,
        user_text: str,
        history: HistoryInput | None,
        account_id: int | None,
        trust_history: bool,
    ) -> TurnResult:
        async with self._database.session() as db:
            session = await self._load_session(db, session_id, account_id)
            if session.status != SessionStatus.ACTIVE.value:
                raise InvalidStateError("Session is not active")
            if not user_text or not user_text.strip():
                raise ValidationError("User text is required")

            expected_total = session.total_turns
            context = await self._assemble_history(db, session_id, history, trust_history)

        artifacts = await self._pipeline.run(session_id, context, user_text)

        turn_number = expected_total + 1
        try:
            async with self._database.session() as db:
                async with db.begin():
                    moved = await SessionRepository(db).advance_turn_counter(session_id, expected_total)
                    if not moved:
                        current = await self._load_session(db, session_id, account_id, refresh=True)
                        if current.status != SessionStatus.ACTIVE.value:
                            raise InvalidStateError("Session is not active")
                        raise PersistenceError(
                            f"Session {session_id} changed while the reply was generated; turn not saved"
                        )

                    turn = await TurnRepository(db).add_turn(
                        session_id=session_id,
                        turn_number=turn_number,
                        user_text=user_text,
                        ai_response_text=artifacts.ai_text,
                        video_url=artifacts.video_url,
                        audio_url=artifacts.audio_url,
                    )
                    await GeneratedVideoRepository(db).add_completed(
                        session_id=session_id,
                        turn_id=turn.id,
                        storage_key=artifacts.video_key,
                        storage_url=artifacts.video_url,
                        external_job_id=artifacts.external_job_id,
                    )
                    # Validated inside the transaction; a failure here rolls the turn back.
                    result = TurnResult(
                        turn_number=turn_number,
                        user_text=user_text,
                        ai_text=artifacts.ai_text,
                        video_url=artifacts.video_url,
                        audio_url=artifacts.audio_url,
                    )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save conversation turn: {e}") from e

        logger.info(f"Committed turn {turn_number} for session {session_id}")
        return result

    # ------------------------------------------------------------------
    # GetSession
    # ------------------------------------------------------------------

    async def get_session(
        self,
        session_id: int,
        *,
        account_id: int | None = None,
    ) -> OperationResult[SessionDetail]:
        """
        Get a session with its full turn history.

        Args:
            session_id: Target session.
            account_id: Restrict to sessions owned by this account.

        Returns:
            The session with turns in ascending turn order, or NotFound.
        """
        actor = self._actor_for(session_id)
        result = await self._guard(
            "get_session",
            actor.call(lambda: self._get_session(session_id, account_id)),
        )
        finished = result.value is not None and result.value.status != SessionStatus.ACTIVE
        if finished or (result.error is not None and result.error.kind in _TERMINAL_KINDS):
            await self._release_idle_actor(session_id)
        return result

    async def _get_session(self, session_id: int, account_id: int | None) -> SessionDetail:
        async with self._database.session() as db:
            session = await self._load_session(db, session_id, account_id)
            turns = await TurnRepository(db).list_for_session(session_id)
            return SessionDetail(
                **SessionRecord.model_validate(session).model_dump(),
                turns=[TurnRecord.model_validate(t) for t in turns],
            )

    # ------------------------------------------------------------------
    # EndSession
    # ------------------------------------------------------------------

    async def end_session(
        self,
        session_id: int,
        *,
        account_id: int | None = None,
    ) -> OperationResult[SessionRecord]:
        """
        Complete an active session.

        Args:
            session_id: Target session.
            account_id: Restrict to sessions owned by this account.

        Returns:
            The completed session, or InvalidState if it was not active.
        """
        actor = self._actor_for(session_id)
        result = await self._guard(
            "end_session",
            actor.call(lambda: self._end_session(session_id, account_id)),
        )
        if result.ok:
            await self._retire_actor(session_id)
        elif result.error is not None and result.error.kind in _TERMINAL_KINDS:
            await self._release_idle_actor(session_id)
        return result

    async def _end_session(self, session_id: int, account_id: int | None) -> SessionRecord:
        async with self._database.session() as db:
            async with db.begin():
                if account_id is not None:
                    owner = await SessionRepository(db).get_by_id(session_id)
                    if owner is None or owner.account_id != account_id:
                        raise InvalidStateError("Session not found or already ended")
                ended = await SessionRepository(db).end_if_active(session_id)
                if not ended:
                    raise InvalidStateError("Session not found or already ended")
                session = await self._load_session(db, session_id, account_id, refresh=True)
            record = SessionRecord.model_validate(session)
        logger.info(f"Ended session {session_id} after {record.total_turns} turns")
        return record

    # ------------------------------------------------------------------
    # ListSessions
    # ------------------------------------------------------------------

    async def list_sessions(self, account_id: int) -> OperationResult[list[SessionRecord]]:
        """
        List an account's sessions, newest first.

        Args:
            account_id: Owning account.

        Returns:
            Sessions ordered by start time descending.
        """
        return await self._guard("list_sessions", self._list_sessions(account_id))

    async def _list_sessions(self, account_id: int) -> list[SessionRecord]:
        async with self._database.session() as db:
            sessions = await SessionRepository(db).list_by_account(account_id)
            return [SessionRecord.model_validate(s) for s in sessions]


class AccountSessions:
    """Session operations scoped to a single account."""

    def __init__(self, service: SessionService, account_id: int) -> None:
        self._service = service
        self._account_id = account_id

    @property
    def account_id(self) -> int:
        return self._account_id

    async def start_session(self, mock_interview_id: int | None = None) -> OperationResult[SessionRecord]:
        return await self._service.start_session(self._account_id, mock_interview_id)

    async def submit_response(
        self,
        session_id: int,
        user_text: str,
        history: HistoryInput | None = None,
        scopes: Collection[str] = (),
    ) -> OperationResult[TurnResult]:
        return await self._service.submit_response(
            session_id,
            user_text,
            history,
            account_id=self._account_id,
            trust_history=CLIENT_HISTORY_SCOPE in scopes,
        )

    async def get_session(self, session_id: int) -> OperationResult[SessionDetail]:
        return await self._service.get_session(session_id, account_id=self._account_id)

    async def end_session(self, session_id: int) -> OperationResult[SessionRecord]:
        return await self._service.end_session(session_id, account_id=self._account_id)

    async def list_sessions(self) -> OperationResult[list[SessionRecord]]:
        return await self._service.list_sessions(self._account_id)


class ActorDirectory:
    """Maps an authenticated account to its single session handle."""

    def __init__(self, service: SessionService) -> None:
        self._service = service
        self._handles: dict[int, AccountSessions] = {}

    def resolve(self, account_id: int) -> AccountSessions:
        """
        Get the handle for an account, creating it on first use.

        Args:
            account_id: Authenticated account.

        Returns:
            The same AccountSessions instance for every call with this account.
        """
        handle = self._handles.get(account_id)
        if handle is None:
            handle = AccountSessions(self._service, account_id)
            self._handles[account_id] = handle
        return handle
