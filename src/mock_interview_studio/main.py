"""
Main entry point for Mock Interview Studio.
"""

import argparse
import asyncio
import logging
import sys

from mock_interview_studio.config import get_settings
from mock_interview_studio.factory import build_service
from mock_interview_studio.io.text_interface import TextInterface
from mock_interview_studio.orchestrator.session_service import ActorDirectory


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mock-interview", description="Practice a mock interview")
    parser.add_argument("--account-id", type=int, required=True, help="Account that owns the session")
    parser.add_argument("--mock-interview-id", type=int, default=None, help="Scheduled interview to link")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the account's sessions instead of starting a new one",
    )
    return parser


async def run_interview(argv: list[str] | None = None) -> None:
    """
    Run an interactive interview session, or list past sessions.

    Initializes the store and providers from settings, resolves the account's
    session handle and hands it to the text interface.
    """
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(__name__)

    logger.info("Initializing Mock Interview Studio...")
    service, database = await build_service()
    try:
        sessions = ActorDirectory(service).resolve(args.account_id)

        if args.list:
            result = await sessions.list_sessions()
            if result.error is not None:
                print(f"Error ({result.error.kind.value}): {result.error.detail}")
                return
            for s in result.unwrap():
                ended = s.ended_at.isoformat() if s.ended_at else "-"
                print(f"{s.id}\t{s.status.value}\t{s.total_turns} turns\tstarted {s.started_at.isoformat()}\tended {ended}")
            return

        logger.info("Starting interview session...")
        await TextInterface(sessions, mock_interview_id=args.mock_interview_id).run()
    finally:
        await service.aclose()
        await database.close()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run_interview(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nInterview session terminated by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
