"""
Per-session actor.

Each session id gets one worker task fed by an inbound queue. Commands are
executed strictly one after another, so reading total_turns and writing the
next turn can never interleave with another command for the same session.
Different sessions have different actors and run in parallel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from mock_interview_studio.orchestrator.errors import InvalidStateError

T = TypeVar("T")

logger = logging.getLogger(__name__)

_Command = tuple[Callable[[], Awaitable[Any]], asyncio.Future]


class SessionActor:
    """Serializes every operation issued against one session id."""

    def __init__(self, session_id: int) -> None:
        self._session_id = session_id
        self._inbox: asyncio.Queue[_Command | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._stopping = False
        self._busy = False

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def is_idle(self) -> bool:
        """True when no command is running or queued."""
        return not self._busy and self._inbox.empty()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _ensure_started(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(),
                name=f"session-actor-{self._session_id}",
            )

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Queue an operation and wait for its result.

        Args:
            operation: Zero-argument coroutine factory; invoked on the actor's task.

        Returns:
            Whatever the operation returns.

        Raises:
            InvalidStateError: If the actor has been stopped.
            Exception: Whatever the operation raises.
        """
        if self._stopping:
            raise InvalidStateError(f"Session {self._session_id} is no longer accepting commands")

        self._ensure_started()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._inbox.put((operation, future))
        return await future

    async def _run(self) -> None:
        logger.debug(f"Actor for session {self._session_id} started")
        while True:
            command = await self._inbox.get()
            if command is None:
                break

            operation, future = command
            if future.cancelled():
                continue
            self._busy = True
            try:
                result = await operation()
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._busy = False
        logger.debug(f"Actor for session {self._session_id} stopped")

    async def stop(self) -> None:
        """Finish already queued commands, then end the worker task."""
        if self._stopping:
            return
        self._stopping = True
        if self._task is None:
            return
        await self._inbox.put(None)
        await self._task
