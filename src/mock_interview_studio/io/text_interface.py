"""
Text-based interview interface.

Provides a command-line interface for practicing an interview: each typed
answer is submitted to the session and the interviewer's reply is printed
together with the links to its audio and video.
"""

import asyncio
from abc import ABC, abstractmethod

from mock_interview_studio.orchestrator.schemas import OperationResult, SessionDetail, TurnResult
from mock_interview_studio.orchestrator.session_service import AccountSessions

END_COMMANDS = ("quit", "exit", "end")
HISTORY_COMMAND = "/history"


class InterviewInterface(ABC):
    """Abstract base class for interview interfaces."""

    @abstractmethod
    async def run(self) -> None:
        """Run the interview interface."""
        ...

    @abstractmethod
    async def send_message(self, message: str) -> None:
        """
        Send a message to the user.

        Args:
            message: Message to display.
        """
        ...

    @abstractmethod
    async def receive_input(self) -> str:
        """
        Receive input from the user.

        Returns:
            User's input string.
        """
        ...


class TextInterface(InterviewInterface):
    """
    Command-line text interface for mock interviews.

    Provides a simple REPL over one session of the given account.
    """

    def __init__(
        self,
        sessions: AccountSessions,
        mock_interview_id: int | None = None,
    ) -> None:
        """
        Initialize the text interface.

        Args:
            sessions: Account-scoped session operations.
            mock_interview_id: Scheduled interview to attach the new session to.
        """
        self._sessions = sessions
        self._mock_interview_id = mock_interview_id
        self._session_id: int | None = None

    @property
    def session_id(self) -> int | None:
        """Get the id of the session started by run(), if any."""
        return self._session_id

    async def run(self) -> None:
        """Run the interactive interview session."""
        print("\n" + "=" * 60)
        print("Mock Interview Studio")
        print("=" * 60 + "\n")

        started = await self._sessions.start_session(self._mock_interview_id)
        if not started.ok:
            await self._report_failure(started)
            return

        session = started.unwrap()
        self._session_id = session.id
        await self.send_message(
            f"Session {session.id} started. Introduce yourself to begin; "
            f"type {HISTORY_COMMAND} to review, or 'end' to finish."
        )

        while True:
            answer = await self.receive_input()
            command = answer.strip().lower()

            if command in END_COMMANDS:
                ended = await self._sessions.end_session(session.id)
                if ended.ok:
                    record = ended.unwrap()
                    await self.send_message(f"Session {record.id} completed after {record.total_turns} turns.")
                else:
                    await self._report_failure(ended)
                break

            if command == HISTORY_COMMAND:
                await self._show_history(session.id)
                continue

            if not command:
                continue

            result = await self._sessions.submit_response(session.id, answer)
            if result.ok:
                await self._display_turn(result.unwrap())
            else:
                await self._report_failure(result)

    async def send_message(self, message: str) -> None:
        """
        Display a message to the terminal.

        Args:
            message: Message to display.
        """
        print(f"\n{message}\n")

    async def receive_input(self) -> str:
        """
        Get input from the terminal.

        Returns:
            User's input string.
        """
        return await self._get_input("You: ")

    async def _get_input(self, prompt: str) -> str:
        """
        Get input with a specific prompt.

        Args:
            prompt: Prompt to display.

        Returns:
            User's input string ("end" once input is exhausted).
        """
        try:
            return await asyncio.to_thread(input, prompt)
        except EOFError:
            return "end"

    async def _display_turn(self, turn: TurnResult) -> None:
        await self.send_message(
            f"Interviewer (turn {turn.turn_number}): {turn.ai_text}\n"
            f"  video: {turn.video_url}\n"
            f"  audio: {turn.audio_url}"
        )

    async def _show_history(self, session_id: int) -> None:
        result = await self._sessions.get_session(session_id)
        if not result.ok:
            await self._report_failure(result)
            return
        detail: SessionDetail = result.unwrap()
        if not detail.turns:
            await self.send_message("No turns yet.")
            return
        lines = []
        for turn in detail.turns:
            lines.append(f"[{turn.turn_number}] You: {turn.user_text}")
            lines.append(f"    Interviewer: {turn.ai_response_text}")
        await self.send_message("\n".join(lines))

    async def _report_failure(self, result: OperationResult) -> None:
        if result.error is None:
            return
        await self.send_message(f"Error ({result.error.kind.value}): {result.error.detail}")
