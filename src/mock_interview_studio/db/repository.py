"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for the session, turn and
generated-video tables. Repositories never commit; the caller owns the
transaction boundary.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mock_interview_studio.db.models import (
    Base,
    GeneratedVideoModel,
    SessionModel,
    TurnModel,
)

T = TypeVar("T", bound=Base)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: int, refresh: bool = False) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's primary key.
            refresh: Reload from the database even if already in the identity map.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(
            self._model_class,
            entity_id,
            populate_existing=refresh,
        )

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity


class SessionRepository(BaseRepository[SessionModel]):
    """Repository for interview session operations."""

    @property
    def _model_class(self) -> type[SessionModel]:
        """Get the model class."""
        return SessionModel

    async def create_session(
        self,
        account_id: int,
        mock_interview_id: int | None = None,
    ) -> SessionModel:
        """
        Create a new active session with no turns.

        Args:
            account_id: Owning account.
            mock_interview_id: Optional scheduled interview this session belongs to.

        Returns:
            The created session model.
        """
        now = _now_utc()
        session = SessionModel(
            account_id=account_id,
            mock_interview_id=mock_interview_id,
            status="active",
            started_at=now,
            total_turns=0,
            created_at=now,
            updated_at=now,
        )
        return await self.create(session)

    async def list_by_account(self, account_id: int) -> list[SessionModel]:
        """
        Get all sessions for an account, newest first.

        Args:
            account_id: Owning account.

        Returns:
            Sessions ordered by start time descending.
        """
        stmt = (
            select(SessionModel)
            .where(SessionModel.account_id == account_id)
            .order_by(SessionModel.started_at.desc(), SessionModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def end_if_active(self, session_id: int) -> bool:
        """
        Mark an active session completed.

        The status check and the write are a single conditional UPDATE, so a
        session can only be ended once.

        Args:
            session_id: Session to end.

        Returns:
            True if the session was active and is now completed.
        """
        now = _now_utc()
        stmt = (
            update(SessionModel)
            .where(SessionModel.id == session_id, SessionModel.status == "active")
            .values(status="completed", ended_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def advance_turn_counter(self, session_id: int, expected_total: int) -> bool:
        """
        Increment total_turns if it still equals expected_total.

        Args:
            session_id: Session receiving the new turn.
            expected_total: The counter value the new turn number was derived from.

        Returns:
            True if the counter moved from expected_total to expected_total + 1.
        """
        stmt = (
            update(SessionModel)
            .where(
                SessionModel.id == session_id,
                SessionModel.status == "active",
                SessionModel.total_turns == expected_total,
            )
            .values(total_turns=SessionModel.total_turns + 1, updated_at=_now_utc())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1


class TurnRepository(BaseRepository[TurnModel]):
    """Repository for conversation turn operations."""

    @property
    def _model_class(self) -> type[TurnModel]:
        """Get the model class."""
        return TurnModel

    async def list_for_session(self, session_id: int) -> list[TurnModel]:
        """
        Get all turns of a session in turn order.

        Args:
            session_id: Owning session.

        Returns:
            Turns ordered by turn number ascending.
        """
        stmt = (
            select(TurnModel)
            .where(TurnModel.session_id == session_id)
            .order_by(TurnModel.turn_number.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_session(self, session_id: int) -> int:
        """Count the turns stored for a session."""
        stmt = select(func.count()).select_from(TurnModel).where(TurnModel.session_id == session_id)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def add_turn(
        self,
        session_id: int,
        turn_number: int,
        user_text: str,
        ai_response_text: str,
        video_url: str | None,
        audio_url: str | None,
    ) -> TurnModel:
        """
        Insert a new turn.

        Returns:
            The created turn model.
        """
        turn = TurnModel(
            session_id=session_id,
            turn_number=turn_number,
            user_text=user_text,
            ai_response_text=ai_response_text,
            video_url=video_url,
            audio_url=audio_url,
            created_at=_now_utc(),
        )
        return await self.create(turn)


class GeneratedVideoRepository(BaseRepository[GeneratedVideoModel]):
    """Repository for generated video bookkeeping."""

    @property
    def _model_class(self) -> type[GeneratedVideoModel]:
        """Get the model class."""
        return GeneratedVideoModel

    async def add_completed(
        self,
        session_id: int,
        turn_id: int,
        storage_key: str,
        storage_url: str,
        external_job_id: str | None = None,
    ) -> GeneratedVideoModel:
        """
        Record a video that has already been rendered and stored.

        Returns:
            The created video model.
        """
        now = _now_utc()
        video = GeneratedVideoModel(
            session_id=session_id,
            turn_id=turn_id,
            storage_key=storage_key,
            storage_url=storage_url,
            external_job_id=external_job_id,
            status="completed",
            created_at=now,
            completed_at=now,
        )
        return await self.create(video)

    async def list_for_session(self, session_id: int) -> list[GeneratedVideoModel]:
        """
        Get all videos of a session.

        Args:
            session_id: Owning session.

        Returns:
            Videos ordered by creation.
        """
        stmt = (
            select(GeneratedVideoModel)
            .where(GeneratedVideoModel.session_id == session_id)
            .order_by(GeneratedVideoModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
