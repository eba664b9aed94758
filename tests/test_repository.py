"""
Tests for the repositories and the schema constraints.
"""

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from mock_interview_studio.db.database import Database
from mock_interview_studio.db.models import GeneratedVideoModel, SessionModel, TurnModel
from mock_interview_studio.db.repository import (
    GeneratedVideoRepository,
    SessionRepository,
    TurnRepository,
)


async def _new_session(database: Database, account_id: int = 1) -> int:
    async with database.session() as db:
        async with db.begin():
            session = await SessionRepository(db).create_session(account_id)
        return session.id


class TestSessionRepository:
    """Tests for session rows."""

    @pytest.mark.asyncio
    async def test_create_session_defaults(self, database: Database) -> None:
        async with database.session() as db:
            async with db.begin():
                session = await SessionRepository(db).create_session(5, mock_interview_id=11)

        assert session.id is not None
        assert session.status == "active"
        assert session.total_turns == 0
        assert session.mock_interview_id == 11
        assert session.ended_at is None

    @pytest.mark.asyncio
    async def test_end_if_active_only_once(self, database: Database) -> None:
        session_id = await _new_session(database)

        async with database.session() as db:
            async with db.begin():
                first = await SessionRepository(db).end_if_active(session_id)
            async with db.begin():
                second = await SessionRepository(db).end_if_active(session_id)
            stored = await SessionRepository(db).get_by_id(session_id, refresh=True)

        assert first is True
        assert second is False
        assert stored is not None
        assert stored.status == "completed"
        assert stored.ended_at is not None

    @pytest.mark.asyncio
    async def test_end_if_active_missing_session(self, database: Database) -> None:
        async with database.session() as db:
            async with db.begin():
                assert await SessionRepository(db).end_if_active(9999) is False

    @pytest.mark.asyncio
    async def test_advance_turn_counter_compare_and_set(self, database: Database) -> None:
        session_id = await _new_session(database)

        async with database.session() as db:
            async with db.begin():
                repo = SessionRepository(db)
                assert await repo.advance_turn_counter(session_id, 0) is True
                assert await repo.advance_turn_counter(session_id, 0) is False
                assert await repo.advance_turn_counter(session_id, 1) is True
            stored = await SessionRepository(db).get_by_id(session_id, refresh=True)

        assert stored is not None
        assert stored.total_turns == 2

    @pytest.mark.asyncio
    async def test_advance_turn_counter_rejects_ended_session(self, database: Database) -> None:
        session_id = await _new_session(database)

        async with database.session() as db:
            async with db.begin():
                repo = SessionRepository(db)
                await repo.end_if_active(session_id)
                assert await repo.advance_turn_counter(session_id, 0) is False

    @pytest.mark.asyncio
    async def test_list_by_account(self, database: Database) -> None:
        first = await _new_session(database, account_id=3)
        second = await _new_session(database, account_id=3)
        await _new_session(database, account_id=4)

        async with database.session() as db:
            sessions = await SessionRepository(db).list_by_account(3)

        # Equal start times fall back to id descending.
        assert [s.id for s in sessions][0] == max(first, second)
        assert {s.id for s in sessions} == {first, second}

    @pytest.mark.asyncio
    async def test_status_check_constraint(self, database: Database) -> None:
        session_id = await _new_session(database)

        with pytest.raises(IntegrityError):
            async with database.session() as db:
                async with db.begin():
                    session = await SessionRepository(db).get_by_id(session_id)
                    assert session is not None
                    session.status = "paused"


class TestTurnRepository:
    """Tests for turn rows."""

    @staticmethod
    async def _add(database: Database, session_id: int, turn_number: int) -> int:
        async with database.session() as db:
            async with db.begin():
                turn = await TurnRepository(db).add_turn(
                    session_id=session_id,
                    turn_number=turn_number,
                    user_text=f"answer {turn_number}",
                    ai_response_text=f"question {turn_number}",
                    video_url=None,
                    audio_url=None,
                )
            return turn.id

    @pytest.mark.asyncio
    async def test_list_in_turn_order(self, database: Database) -> None:
        session_id = await _new_session(database)
        for number in (2, 1, 3):
            await self._add(database, session_id, number)

        async with database.session() as db:
            turns = await TurnRepository(db).list_for_session(session_id)
            count = await TurnRepository(db).count_for_session(session_id)

        assert [t.turn_number for t in turns] == [1, 2, 3]
        assert count == 3

    @pytest.mark.asyncio
    async def test_turn_number_unique_per_session(self, database: Database) -> None:
        session_id = await _new_session(database)
        other_id = await _new_session(database)
        await self._add(database, session_id, 1)
        await self._add(database, other_id, 1)

        with pytest.raises(IntegrityError):
            await self._add(database, session_id, 1)

    @pytest.mark.asyncio
    async def test_turn_requires_existing_session(self, database: Database) -> None:
        with pytest.raises(IntegrityError):
            await self._add(database, 424242, 1)

    @pytest.mark.asyncio
    async def test_deleting_session_cascades(self, database: Database) -> None:
        session_id = await _new_session(database)
        turn_id = await self._add(database, session_id, 1)
        async with database.session() as db:
            async with db.begin():
                await GeneratedVideoRepository(db).add_completed(
                    session_id=session_id,
                    turn_id=turn_id,
                    storage_key=f"sessions/{session_id}/videos/1.mp4",
                    storage_url="https://artifacts.example.com/v.mp4",
                    external_job_id="job-1",
                )

        async with database.session() as db:
            async with db.begin():
                await db.execute(delete(SessionModel).where(SessionModel.id == session_id))

        async with database.session() as db:
            turns = (await db.execute(select(TurnModel))).scalars().all()
            videos = (await db.execute(select(GeneratedVideoModel))).scalars().all()

        assert turns == []
        assert videos == []


class TestGeneratedVideoRepository:
    """Tests for video bookkeeping rows."""

    @pytest.mark.asyncio
    async def test_add_completed(self, database: Database) -> None:
        session_id = await _new_session(database)
        turn_id = await TestTurnRepository._add(database, session_id, 1)

        async with database.session() as db:
            async with db.begin():
                video = await GeneratedVideoRepository(db).add_completed(
                    session_id=session_id,
                    turn_id=turn_id,
                    storage_key="sessions/1/videos/1.mp4",
                    storage_url="https://artifacts.example.com/sessions/1/videos/1.mp4",
                )
            listed = await GeneratedVideoRepository(db).list_for_session(session_id)

        assert video.status == "completed"
        assert video.completed_at is not None
        assert video.external_job_id is None
        assert [v.id for v in listed] == [video.id]
