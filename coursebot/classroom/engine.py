"""
ProgressEngine - Cursor movement, scoring and statistics for each user.

Provides:
- Start / resume / reset of a user's course
- Forward and backward navigation within the course or the final test
- Quiz and final test answer bookkeeping
- Progress statistics

Pure state transitions over SessionState: no transport, no storage I/O.
"""

import logging
from enum import Enum
from typing import Optional, Union

from coursebot.errors import BoundaryViolation, ContentLookupFailure, NoActiveSession
from coursebot.schemas import (
    Block,
    CourseCatalog,
    ProgressStats,
    QuizBlock,
    QuizRunState,
    SessionMode,
    SessionState,
)
from coursebot.utils import percent_of

from .sessions import SessionStore


logger = logging.getLogger(__name__)


class Terminal(str, Enum):
    """Returned by advance() instead of a block when a sequence runs out."""
    COURSE_COMPLETED = "course_completed"
    FINAL_TEST_COMPLETED = "final_test_completed"


class ProgressEngine:
    """
    Per-user state machine over the course catalog.

    The catalog is shared and never copied into sessions; sessions only
    hold indices into it.
    """

    def __init__(self, catalog: CourseCatalog, store: SessionStore):
        """
        Initialize engine.

        Args:
            catalog: Immutable course catalog
            store: Session store holding every user's SessionState
        """
        self.catalog = catalog
        self.store = store

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _sequence(self, session: SessionState) -> list:
        """Block sequence the cursor currently indexes."""
        if session.mode == SessionMode.IN_COURSE:
            return self.catalog.blocks
        if session.mode in (SessionMode.IN_FINAL_TEST, SessionMode.COMPLETED):
            return self.catalog.final_test
        return []

    def _started(self, user_id: int) -> SessionState:
        session = self.store.get(user_id)
        if session is None or session.mode == SessionMode.NOT_STARTED:
            raise NoActiveSession(user_id)
        return session

    def _block_at(self, session: SessionState) -> Block:
        sequence = self._sequence(session)
        if not 0 <= session.cursor < len(sequence):
            raise ContentLookupFailure(session.user_id, session.cursor)
        return sequence[session.cursor]

    def _enter(self, session: SessionState):
        """Open a quiz run when the cursor lands on an unanswered quiz."""
        block = self._block_at(session)
        if isinstance(block, QuizBlock) and block.id not in session.answered_ids:
            session.quiz_run = QuizRunState(
                quiz_id=block.id,
                current_question_index=session.cursor,
            )
        else:
            session.quiz_run = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, user_id: int) -> Block:
        """
        Start (or restart) the course at its first block.

        Always fully re-initializes progress. Live message ids are carried
        over because the message manager still owns those messages.
        """
        previous = self.store.get(user_id)
        session = SessionState(
            user_id=user_id,
            mode=SessionMode.IN_COURSE,
            cursor=0,
            visited_count=1,
        )
        if previous is not None:
            session.message_history = previous.message_history
        self.store.put(session)
        self._enter(session)
        return self.catalog.blocks[0]

    def resume(self, user_id: int, cursor: int) -> Block:
        """Start the course and jump to a persisted resume cursor (clamped)."""
        self.start(user_id)
        session = self.store.get(user_id)
        session.cursor = max(0, min(cursor, self.catalog.total_blocks - 1))
        session.visited_count = session.cursor + 1
        self._enter(session)
        return self._block_at(session)

    def reset(self, user_id: int):
        """Discard the user's session entirely."""
        self.store.delete(user_id)

    def recover(self, user_id: int):
        """Move a desynchronized cursor back to the start of its sequence."""
        session = self.store.get(user_id)
        if session is None or session.mode == SessionMode.NOT_STARTED:
            return
        logger.warning(f"Recovering user {user_id} from cursor {session.cursor} in {session.mode.value}")
        session.cursor = 0
        session.finished = False
        self._enter(session)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def advance(self, user_id: int) -> Union[Block, Terminal]:
        """
        Move to the next block of the active sequence.

        Returns:
            The new block, or a Terminal marker when the sequence runs out.
            COURSE_COMPLETED is returned once; the cursor stays on the last
            block and mode stays IN_COURSE. FINAL_TEST_COMPLETED ends the
            test (mode COMPLETED) and is returned again, without any state
            change, for every later call.

        Raises:
            NoActiveSession: If the user has not started
            BoundaryViolation: If the course was already completed
        """
        session = self._started(user_id)
        if session.mode == SessionMode.COMPLETED:
            return Terminal.FINAL_TEST_COMPLETED
        if session.mode == SessionMode.IN_COURSE and session.finished:
            raise BoundaryViolation(f"Course already completed for user {user_id}")

        sequence = self._sequence(session)
        if session.cursor + 1 >= len(sequence):
            session.quiz_run = None
            if session.mode == SessionMode.IN_COURSE:
                session.finished = True
                return Terminal.COURSE_COMPLETED
            session.mode = SessionMode.COMPLETED
            return Terminal.FINAL_TEST_COMPLETED

        session.cursor += 1
        if session.mode == SessionMode.IN_COURSE:
            session.visited_count = max(session.visited_count, session.cursor + 1)
        self._enter(session)
        return sequence[session.cursor]

    def can_retreat(self, user_id: int) -> bool:
        """Check whether retreat() would move the cursor."""
        session = self.store.get(user_id)
        if session is None or not session.is_active:
            return False
        return session.finished or session.cursor > 0

    def retreat(self, user_id: int) -> Optional[Block]:
        """
        Move back one block within the active sequence.

        Returns None without touching state at the first block, before the
        course starts and after the final test ends. From the completed
        course position, returns the last course block.
        """
        if not self.can_retreat(user_id):
            return None
        session = self.store.get(user_id)
        if session.finished:
            session.finished = False
        else:
            session.cursor -= 1
        self._enter(session)
        return self._block_at(session)

    def start_final_test(self, user_id: int) -> Block:
        """
        Switch the user into the final test at its first question.

        Course completion is checked by the caller. final_total is fixed here.
        """
        session = self._started(user_id)
        session.mode = SessionMode.IN_FINAL_TEST
        session.cursor = 0
        session.finished = False
        session.final_score = 0
        session.final_total = self.catalog.total_final_questions
        session.answered_ids = set()
        self._enter(session)
        return self.catalog.final_test[0]

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def record_answer(self, user_id: int, is_correct: bool) -> Optional[QuizRunState]:
        """
        Count an answer to the quiz under the cursor.

        Does not move the cursor. Returns the closed quiz run, if one was open.
        Calling this off a quiz block is a caller defect: logged, no-op.
        """
        session = self.store.get(user_id)
        if session is None or not session.is_active:
            logger.warning(f"record_answer for user {user_id} without an active session")
            return None

        block = self._block_at(session)
        if not isinstance(block, QuizBlock):
            logger.warning(f"record_answer for user {user_id} on non-quiz block {block.id}")
            return None

        if session.mode == SessionMode.IN_COURSE:
            session.quiz_count += 1
            session.correct_count += int(is_correct)
        else:
            session.final_score += int(is_correct)
        session.answered_ids.add(block.id)

        run = session.quiz_run
        session.quiz_run = None
        if run is not None:
            run.score += int(is_correct)
        return run

    def is_answered(self, user_id: int) -> bool:
        """Check whether the quiz under the cursor was already answered."""
        session = self.store.get(user_id)
        if session is None or not session.is_active:
            return False
        return self._block_at(session).id in session.answered_ids

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def session(self, user_id: int) -> Optional[SessionState]:
        return self.store.get(user_id)

    def is_course_finished(self, user_id: int) -> bool:
        session = self.store.get(user_id)
        return session is not None and session.mode == SessionMode.IN_COURSE and session.finished

    def current_block(self, user_id: int) -> Optional[Block]:
        """
        Resolve the cursor to a block.

        Returns None before the course starts.

        Raises:
            ContentLookupFailure: If the cursor is out of range
        """
        session = self.store.get(user_id)
        if session is None or session.mode == SessionMode.NOT_STARTED:
            return None
        return self._block_at(session)

    def position(self, user_id: int) -> tuple[int, int]:
        """
        Get position as (current, total) within the active sequence.

        Returns (0, total) if not started.
        """
        session = self.store.get(user_id)
        if session is None or session.mode == SessionMode.NOT_STARTED:
            return (0, self.catalog.total_blocks)
        return (session.cursor + 1, len(self._sequence(session)))

    def stats(self, user_id: int) -> ProgressStats:
        """Get progress statistics for display."""
        session = self.store.get(user_id) or SessionState(user_id=user_id)
        total = self.catalog.total_blocks
        final_percent = None
        if session.final_total > 0:
            final_percent = percent_of(session.final_score, session.final_total)

        return ProgressStats(
            progress_percent=percent_of(session.visited_count, total),
            correct_answers=session.correct_count,
            total_quizzes=session.quiz_count,
            final_score=session.final_score,
            final_total=session.final_total,
            final_percent=final_percent,
        )
