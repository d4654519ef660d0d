"""
CourseBot - Conversational course runner

Plays the course from the configured catalog in the terminal, using the
same orchestrator a chat network adapter would drive.

Usage:
    python app.py
    python app.py --course data/course.yaml --user 42

Type a button number to press it, /start or /reset for commands, q to quit.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from coursebot.chat import ConsoleTransport, FlowOrchestrator, ReminderService
from coursebot.classroom import ProgressEngine, SessionStore, UserRecordStore, load_catalog
from coursebot.config import Settings, configure_logging, load_settings
from coursebot.errors import CatalogError
from coursebot.schemas import (
    InboundEvent,
    ResetAction,
    StartAction,
    UnrecognizedAction,
)


logger = logging.getLogger(__name__)

COMMANDS = {
    "/start": StartAction,
    "/reset": ResetAction,
}


def parse_input(line: str, transport: ConsoleTransport):
    """Map one line of terminal input to an action (None to quit)."""
    line = line.strip()
    if line.lower() in ("q", "quit", "exit"):
        return None
    if line in COMMANDS:
        return COMMANDS[line]()
    if line.isdigit():
        action = transport.press(int(line))
        if action is not None:
            return action
    return UnrecognizedAction()


async def run_console(
    orchestrator: FlowOrchestrator,
    transport: ConsoleTransport,
    user_id: int,
    settings: Settings,
):
    reminders = ReminderService(
        orchestrator.records,
        transport,
        messages=orchestrator.messages,
        inactive_days=settings.inactive_days,
    )
    reminder_task = asyncio.create_task(reminders.run(settings.reminder_interval_hours))

    await orchestrator.handle(InboundEvent(user_id=user_id, action=StartAction()))
    event_number = 0
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            action = parse_input(line, transport)
            if action is None:
                break
            event_number += 1
            await orchestrator.handle(
                InboundEvent(user_id=user_id, action=action, event_id=str(event_number))
            )
    finally:
        reminder_task.cancel()
        orchestrator.close()


def main():
    parser = argparse.ArgumentParser(
        description="Play a CourseBot course in the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--course",
        type=Path,
        default=None,
        help="Course catalog file (default: COURSEBOT_COURSE_PATH or data/course.yaml)"
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="User records database (default: COURSEBOT_RECORDS_DB or data/bot.db)"
    )
    parser.add_argument(
        "--user",
        type=int,
        default=1,
        help="Chat user id to play as"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file"
    )
    args = parser.parse_args()

    settings = load_settings(args.env_file)
    configure_logging(settings.log_level)

    course_path = args.course or settings.course_path
    try:
        catalog = load_catalog(course_path, settings.final_test_length)
    except CatalogError as e:
        logger.error(str(e))
        sys.exit(1)

    transport = ConsoleTransport()
    engine = ProgressEngine(catalog, SessionStore())
    orchestrator = FlowOrchestrator(
        engine,
        transport,
        records=UserRecordStore(args.db or settings.records_db),
        continue_delay=settings.quiz_continue_delay,
    )
    asyncio.run(run_console(orchestrator, transport, args.user, settings))


if __name__ == "__main__":
    main()
