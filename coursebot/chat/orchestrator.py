"""
FlowOrchestrator - Turn inbound chat events into rendered course turns.

For every event, under the user's lock:
1. Acknowledge the button press
2. Run the progress engine operation
3. Delete the previous turn's messages
4. Render and send the new turn, recording the message ids

Quiz answers get a feedback message at once and a "continue" prompt after
a short pause. The pause runs as a separate task that re-enters the
user's lock and drops itself if the session moved on in the meantime.

Every failure stops here and becomes a fallback message with a restart
button.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from coursebot.classroom import ProgressEngine, Terminal, UserRecordStore
from coursebot.errors import (
    BoundaryViolation,
    ContentLookupFailure,
    NoActiveSession,
    TransportFailure,
)
from coursebot.schemas import (
    AnswerQuizAction,
    InboundEvent,
    NextAction,
    OutboundMessage,
    PrevAction,
    QuizBlock,
    ResetAction,
    RestartAction,
    ResumeAction,
    SessionMode,
    SessionState,
    StartAction,
    StartFinalTestAction,
)
from coursebot.viewer import (
    SESSION_EXPIRED_TEXT,
    render_answer_feedback,
    render_block,
    render_continue_prompt,
    render_course_completed,
    render_fallback,
    render_final_results,
    render_final_test_intro,
    render_greeting,
    render_media_fallback,
    render_reset_done,
    render_resume_offer,
    render_unrecognized,
)

from .messages import EphemeralMessageManager
from .transport import Transport


logger = logging.getLogger(__name__)

DEFAULT_CONTINUE_DELAY = 1.5  # seconds between answer feedback and the continue prompt


@dataclass(frozen=True)
class ContinueGuard:
    """Position a deferred continue prompt was scheduled for."""
    user_id: int
    session_id: str
    mode: SessionMode
    cursor: int
    finished: bool

    @classmethod
    def capture(cls, session: SessionState) -> "ContinueGuard":
        return cls(
            user_id=session.user_id,
            session_id=session.session_id,
            mode=session.mode,
            cursor=session.cursor,
            finished=session.finished,
        )

    def matches(self, session: Optional[SessionState]) -> bool:
        return (
            session is not None
            and session.session_id == self.session_id
            and session.mode == self.mode
            and session.cursor == self.cursor
            and session.finished == self.finished
        )


class FlowOrchestrator:
    """
    The only component that sends course content through the transport.

    Events for different users run concurrently; events for the same user
    are serialized by the session store's per-user lock.
    """

    def __init__(
        self,
        engine: ProgressEngine,
        transport: Transport,
        messages: Optional[EphemeralMessageManager] = None,
        records: Optional[UserRecordStore] = None,
        continue_delay: float = DEFAULT_CONTINUE_DELAY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize orchestrator.

        Args:
            engine: Progress engine (its store supplies sessions and locks)
            transport: Chat transport
            messages: Ephemeral message manager (default: one over engine.store)
            records: Optional user record store for resume points and greetings
            continue_delay: Seconds before the post-answer continue prompt
            clock: Source of the current time
        """
        self.engine = engine
        self.store = engine.store
        self.transport = transport
        self.messages = messages or EphemeralMessageManager(engine.store, transport)
        self.records = records
        self.continue_delay = continue_delay
        self.clock = clock
        self._pending: dict[int, asyncio.Task] = {}

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def handle(self, event: InboundEvent):
        """Handle one inbound event. Never raises for per-event failures."""
        if event.event_id:
            await self._acknowledge(event.event_id)

        user_id = event.user_id
        async with self.store.lock(user_id):
            try:
                await self._dispatch(event)
            except BoundaryViolation as e:
                logger.debug(f"Ignored {event.action.kind} for user {user_id}: {e}")
            except NoActiveSession:
                logger.info(f"{event.action.kind} from user {user_id} without an active session")
                await self._send_fallback(user_id, SESSION_EXPIRED_TEXT)
            except ContentLookupFailure as e:
                logger.error(f"Content lookup failed: {e}")
                self.engine.recover(user_id)
                await self._send_fallback(user_id)
            except TransportFailure as e:
                logger.error(f"Transport failure for user {user_id}: {e}")
                await self._send_fallback(user_id)
            except Exception:
                logger.exception(f"Unexpected error handling {event.action.kind} for user {user_id}")
                await self._send_fallback(user_id)

    async def _dispatch(self, event: InboundEvent):
        action = event.action
        user_id = event.user_id

        if isinstance(action, StartAction):
            await self._start(event)
        elif isinstance(action, RestartAction):
            await self._begin(user_id)
        elif isinstance(action, ResumeAction):
            await self._resume(user_id)
        elif isinstance(action, ResetAction):
            await self._reset(user_id)
        elif isinstance(action, NextAction):
            await self._next(user_id)
        elif isinstance(action, PrevAction):
            await self._prev(user_id)
        elif isinstance(action, StartFinalTestAction):
            await self._start_final_test(user_id)
        elif isinstance(action, AnswerQuizAction):
            await self._answer(user_id, action)
        else:
            await self._send_turn(user_id, [render_unrecognized()])

    # -------------------------------------------------------------------------
    # Lifecycle events
    # -------------------------------------------------------------------------

    async def _start(self, event: InboundEvent):
        """
        Greet the user and start the course.

        A user with a persisted resume point but no live session (the
        process restarted) is offered to continue instead.
        """
        user_id = event.user_id
        record = None
        days_inactive = 0
        if self.records is not None:
            record = self.records.get_or_create(user_id, event.profile)
            days_inactive = record.days_inactive(self.clock())

        session = self.engine.session(user_id)
        has_session = session is not None and session.mode != SessionMode.NOT_STARTED
        if record is not None and record.current_step > 0 and not has_session:
            self._cancel_pending(user_id)
            await self.messages.clear_all(user_id)
            await self._send_turn(user_id, [render_resume_offer(record, days_inactive)])
            return

        greeting = render_greeting(self.engine.catalog.introduction, record, days_inactive)
        await self._begin(user_id, greeting)

    async def _begin(self, user_id: int, greeting: Optional[OutboundMessage] = None):
        """Wipe the screen and the session, then show the first block."""
        self._cancel_pending(user_id)
        await self.messages.clear_all(user_id)
        self.engine.reset(user_id)
        self.engine.start(user_id)
        self._persist_cursor(user_id)

        if greeting is None:
            greeting = render_greeting(self.engine.catalog.introduction)
        await self._send_turn(user_id, [greeting, *self._render_current(user_id)])
        logger.info(f"User {user_id} started the course")

    async def _resume(self, user_id: int):
        record = self.records.get(user_id) if self.records is not None else None
        if record is None or record.current_step <= 0:
            await self._begin(user_id)
            return

        self._cancel_pending(user_id)
        await self.messages.clear_all(user_id)
        self.engine.reset(user_id)
        self.engine.resume(user_id, record.current_step)
        self._persist_cursor(user_id)
        await self._send_turn(user_id, self._render_current(user_id))
        logger.info(f"User {user_id} resumed at step {record.current_step}")

    async def _reset(self, user_id: int):
        self._cancel_pending(user_id)
        await self.messages.clear_all(user_id)
        self.engine.reset(user_id)
        if self.records is not None:
            self._save_cursor(user_id, 0)
        await self._send_turn(user_id, [render_reset_done()])
        logger.info(f"User {user_id} reset their progress")

    # -------------------------------------------------------------------------
    # Navigation events
    # -------------------------------------------------------------------------

    async def _next(self, user_id: int):
        result = self.engine.advance(user_id)
        self._cancel_pending(user_id)

        if result == Terminal.COURSE_COMPLETED:
            turn = [render_course_completed(self.engine.stats(user_id))]
            logger.info(f"User {user_id} completed the course")
        elif result == Terminal.FINAL_TEST_COMPLETED:
            stats = self.engine.stats(user_id)
            turn = [render_final_results(stats)]
            logger.info(f"User {user_id} finished the final test: {stats.final_score}/{stats.final_total}")
        else:
            turn = self._render_current(user_id)

        self._persist_cursor(user_id)
        await self._replace_turn(user_id, turn)

    async def _prev(self, user_id: int):
        if not self.engine.can_retreat(user_id):
            self._require_session(user_id)
            raise BoundaryViolation("Already at the first block")

        self.engine.retreat(user_id)
        self._cancel_pending(user_id)
        self._persist_cursor(user_id)
        await self._replace_turn(user_id, self._render_current(user_id))

    async def _start_final_test(self, user_id: int):
        self._require_session(user_id)
        if not self.engine.is_course_finished(user_id):
            raise BoundaryViolation("Final test is locked until the course is completed")

        self.engine.start_final_test(user_id)
        self._cancel_pending(user_id)
        intro = render_final_test_intro(self.engine.catalog.total_final_questions)
        await self._replace_turn(user_id, [intro, *self._render_current(user_id)])
        logger.info(f"User {user_id} started the final test")

    # -------------------------------------------------------------------------
    # Quiz answers
    # -------------------------------------------------------------------------

    async def _answer(self, user_id: int, action: AnswerQuizAction):
        session = self._require_session(user_id)
        run = session.quiz_run
        if run is None or run.current_question_index != action.question_index:
            raise BoundaryViolation(f"Stale answer for question {action.question_index}")

        block = self.engine.current_block(user_id)
        if not isinstance(block, QuizBlock) or block.id != run.quiz_id:
            raise BoundaryViolation(f"Answer does not match the open quiz {run.quiz_id}")
        if action.option_index >= len(block.options):
            raise BoundaryViolation(f"Option {action.option_index} out of range for quiz {block.id}")

        is_correct = block.is_correct(action.option_index)
        self.engine.record_answer(user_id, is_correct)
        await self._replace_turn(user_id, [render_answer_feedback(block, is_correct)])
        self._schedule_continue(ContinueGuard.capture(session))

    def _schedule_continue(self, guard: ContinueGuard):
        self._cancel_pending(guard.user_id)
        task = asyncio.create_task(self._continue_later(guard))
        self._pending[guard.user_id] = task
        task.add_done_callback(lambda t, uid=guard.user_id: self._forget(uid, t))

    async def _continue_later(self, guard: ContinueGuard):
        await asyncio.sleep(self.continue_delay)
        user_id = guard.user_id
        async with self.store.lock(user_id):
            session = self.engine.session(user_id)
            if not guard.matches(session):
                logger.debug(f"Dropping stale continue prompt for user {user_id}")
                return
            current, total = self.engine.position(user_id)
            prompt = render_continue_prompt(
                self.engine.can_retreat(user_id),
                in_final_test=session.mode == SessionMode.IN_FINAL_TEST,
                last_question=current == total,
            )
            try:
                await self._send_turn(user_id, [prompt])
            except TransportFailure as e:
                logger.error(f"Could not send continue prompt to user {user_id}: {e}")
                await self._send_fallback(user_id)

    def _cancel_pending(self, user_id: int):
        task = self._pending.pop(user_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _forget(self, user_id: int, task: asyncio.Task):
        if self._pending.get(user_id) is task:
            del self._pending[user_id]

    async def drain(self):
        """Wait for every scheduled continue prompt to run or be dropped."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    def close(self):
        """Cancel every scheduled continue prompt."""
        for user_id in list(self._pending):
            self._cancel_pending(user_id)

    # -------------------------------------------------------------------------
    # Rendering and sending
    # -------------------------------------------------------------------------

    def _require_session(self, user_id: int) -> SessionState:
        session = self.engine.session(user_id)
        if session is None or session.mode == SessionMode.NOT_STARTED:
            raise NoActiveSession(user_id)
        return session

    def _render_current(self, user_id: int) -> list[OutboundMessage]:
        block = self.engine.current_block(user_id)
        if block is None:
            raise NoActiveSession(user_id)
        session = self.engine.session(user_id)
        return render_block(
            block,
            question_index=session.cursor,
            position=self.engine.position(user_id),
            can_retreat=self.engine.can_retreat(user_id),
            answered=isinstance(block, QuizBlock) and self.engine.is_answered(user_id),
        )

    async def _send(self, user_id: int, message: OutboundMessage):
        """Send one message and track it; a failed media send falls back to text."""
        try:
            message_id = await self.transport.send(user_id, message)
        except TransportFailure as e:
            if not message.media:
                raise
            logger.warning(f"Could not send media {message.media} to user {user_id}: {e}")
            message_id = await self.transport.send(user_id, render_media_fallback(message))
        self.messages.record_sent(user_id, message_id)

    async def _send_turn(self, user_id: int, turn: list[OutboundMessage]):
        for message in turn:
            await self._send(user_id, message)

    async def _replace_turn(self, user_id: int, turn: list[OutboundMessage]):
        await self.messages.clear_all(user_id)
        await self._send_turn(user_id, turn)

    async def _send_fallback(self, user_id: int, text: Optional[str] = None):
        """Single retry-free fallback message; a failure here is only logged."""
        message = render_fallback(text) if text else render_fallback()
        try:
            await self.messages.clear_all(user_id)
            message_id = await self.transport.send(user_id, message)
        except TransportFailure as e:
            logger.error(f"Could not deliver fallback message to user {user_id}: {e}")
            return
        self.messages.record_sent(user_id, message_id)

    async def _acknowledge(self, event_id: str):
        try:
            await self.transport.answer_event(event_id)
        except TransportFailure as e:
            logger.warning(f"Could not acknowledge event {event_id}: {e}")

    # -------------------------------------------------------------------------
    # Resume points
    # -------------------------------------------------------------------------

    def _persist_cursor(self, user_id: int):
        """Save the course cursor as the resume point (course mode only)."""
        if self.records is None:
            return
        session = self.engine.session(user_id)
        if session is not None and session.mode == SessionMode.IN_COURSE:
            self._save_cursor(user_id, session.cursor)

    def _save_cursor(self, user_id: int, cursor: int):
        try:
            self.records.update_cursor(user_id, cursor)
        except sqlite3.Error as e:
            logger.warning(f"Could not save resume point for user {user_id}: {e}")
