"""
Progress engine tests.

Covers navigation, completion markers, answer bookkeeping and statistics.
"""

import pytest

from coursebot.classroom import ProgressEngine, SessionStore, Terminal
from coursebot.errors import BoundaryViolation, ContentLookupFailure, NoActiveSession
from coursebot.schemas import BEFORE_FIRST, CourseCatalog, KnowledgeBlock, QuizBlock, SessionMode, SessionState

from conftest import make_catalog


USER = 42


def _comparable(session: SessionState) -> dict:
    """Session state without the random session id."""
    return session.model_dump(exclude={"session_id"})


class TestCourseWalkthrough:
    """Catalog K0, Quiz1, K2 with a two-question final test."""

    def test_course_scenario(self, engine):
        assert engine.start(USER).id == "K0"
        assert engine.current_block(USER).id == "K0"

        assert engine.advance(USER).id == "Quiz1"
        engine.record_answer(USER, True)
        stats = engine.stats(USER)
        assert stats.correct_answers == 1
        assert stats.total_quizzes == 1

        assert engine.advance(USER).id == "K2"
        assert engine.advance(USER) == Terminal.COURSE_COMPLETED

        session = engine.session(USER)
        assert session.mode == SessionMode.IN_COURSE
        assert session.finished
        assert session.cursor == 2

    def test_final_test_scenario(self, engine):
        engine.start(USER)
        for _ in range(3):
            engine.advance(USER)
        assert engine.is_course_finished(USER)

        first = engine.start_final_test(USER)
        session = engine.session(USER)
        assert first.id == "F0"
        assert session.mode == SessionMode.IN_FINAL_TEST
        assert session.cursor == 0

        assert engine.advance(USER).id == "F1"
        assert engine.advance(USER) == Terminal.FINAL_TEST_COMPLETED
        assert engine.session(USER).mode == SessionMode.COMPLETED
        assert engine.stats(USER).final_total == 2

        completed = _comparable(engine.session(USER))
        assert engine.advance(USER) == Terminal.FINAL_TEST_COMPLETED
        assert engine.advance(USER) == Terminal.FINAL_TEST_COMPLETED
        assert _comparable(engine.session(USER)) == completed
        assert engine.stats(USER).final_total == 2

    def test_retreat_not_started(self, engine, store):
        assert engine.retreat(USER) is None
        assert USER not in store

    def test_retreat_not_started_existing_session(self, engine, store):
        store.get_or_create(USER)
        before = store.get(USER).model_dump()
        assert engine.retreat(USER) is None
        assert store.get(USER).model_dump() == before


class TestNavigation:
    def test_advance_not_started(self, engine):
        with pytest.raises(NoActiveSession):
            engine.advance(USER)

    def test_retreat_at_first_block_is_noop(self, engine):
        engine.start(USER)
        before = engine.session(USER).model_dump()
        assert not engine.can_retreat(USER)
        assert engine.retreat(USER) is None
        assert engine.session(USER).model_dump() == before

    def test_retreat_steps_back(self, engine):
        engine.start(USER)
        engine.advance(USER)
        assert engine.can_retreat(USER)
        assert engine.retreat(USER).id == "K0"
        assert engine.session(USER).cursor == 0

    def test_retreat_from_completed_course(self, engine):
        engine.start(USER)
        for _ in range(3):
            engine.advance(USER)
        assert engine.retreat(USER).id == "K2"
        session = engine.session(USER)
        assert not session.finished
        assert session.cursor == 2
        # completion can be reached again after stepping back
        assert engine.advance(USER) == Terminal.COURSE_COMPLETED

    def test_completion_signalled_once(self, engine):
        engine.start(USER)
        for _ in range(3):
            engine.advance(USER)
        visited = engine.session(USER).visited_count
        for _ in range(3):
            with pytest.raises(BoundaryViolation):
                engine.advance(USER)
        assert engine.session(USER).visited_count == visited
        assert engine.session(USER).cursor == 2

    def test_retreat_never_leaves_final_test(self, engine):
        engine.start(USER)
        for _ in range(3):
            engine.advance(USER)
        engine.start_final_test(USER)
        assert not engine.can_retreat(USER)
        assert engine.retreat(USER) is None
        assert engine.session(USER).mode == SessionMode.IN_FINAL_TEST

    def test_retreat_after_final_test_completed(self, engine):
        engine.start(USER)
        for _ in range(3):
            engine.advance(USER)
        engine.start_final_test(USER)
        engine.advance(USER)
        engine.advance(USER)
        assert engine.retreat(USER) is None

    def test_cursor_stays_in_bounds(self, engine):
        engine.start(USER)
        moves = [engine.advance, engine.retreat, engine.retreat, engine.advance, engine.advance,
                 engine.advance, engine.retreat, engine.advance]
        for move in moves:
            move(USER)
            session = engine.session(USER)
            assert 0 <= session.cursor < engine.catalog.total_blocks

    def test_visited_count_is_high_water_mark(self, engine):
        engine.start(USER)
        engine.advance(USER)
        engine.advance(USER)
        engine.retreat(USER)
        engine.retreat(USER)
        assert engine.session(USER).visited_count == 3
        assert engine.stats(USER).progress_percent == 100

    def test_position(self, engine):
        assert engine.position(USER) == (0, 3)
        engine.start(USER)
        engine.advance(USER)
        assert engine.position(USER) == (2, 3)

    def test_current_block_not_started(self, engine):
        assert engine.current_block(USER) is None


class TestQuizRun:
    def test_quiz_run_opens_on_quiz(self, engine):
        engine.start(USER)
        assert engine.session(USER).quiz_run is None
        engine.advance(USER)
        run = engine.session(USER).quiz_run
        assert run.quiz_id == "Quiz1"
        assert run.current_question_index == 1

    def test_record_answer_closes_run(self, engine):
        engine.start(USER)
        engine.advance(USER)
        run = engine.record_answer(USER, True)
        assert run.score == 1
        assert engine.session(USER).quiz_run is None
        assert engine.is_answered(USER)

    def test_answered_quiz_does_not_reopen(self, engine):
        engine.start(USER)
        engine.advance(USER)
        engine.record_answer(USER, False)
        engine.advance(USER)
        engine.retreat(USER)
        assert engine.session(USER).quiz_run is None

    def test_record_answer_on_knowledge_block_is_noop(self, engine):
        engine.start(USER)
        before = engine.session(USER).model_dump()
        assert engine.record_answer(USER, True) is None
        assert engine.session(USER).model_dump() == before

    def test_record_answer_without_session(self, engine):
        assert engine.record_answer(USER, True) is None

    def test_final_test_answers_counted_separately(self, engine):
        engine.start(USER)
        engine.advance(USER)
        engine.record_answer(USER, False)
        engine.advance(USER)
        engine.advance(USER)
        engine.start_final_test(USER)
        engine.record_answer(USER, True)
        engine.advance(USER)
        engine.record_answer(USER, False)

        stats = engine.stats(USER)
        assert stats.correct_answers == 0
        assert stats.total_quizzes == 1
        assert stats.final_score == 1
        assert stats.final_total == 2
        assert stats.final_percent == 50


class TestScoreBookkeeping:
    @pytest.mark.parametrize("answers", [
        [True],
        [False],
        [True, False, True],
        [False, False, True, True, True],
    ])
    def test_counts_match_answers(self, answers):
        catalog = make_catalog()
        engine = ProgressEngine(catalog, SessionStore())
        engine.start(USER)
        for is_correct in answers:
            engine.advance(USER)
            engine.record_answer(USER, is_correct)
            engine.retreat(USER)

        stats = engine.stats(USER)
        assert stats.total_quizzes == len(answers)
        assert stats.correct_answers == sum(answers)

    def test_final_percent_absent_before_final_test(self, engine):
        engine.start(USER)
        assert engine.stats(USER).final_percent is None

    def test_stats_for_unknown_user(self, engine):
        stats = engine.stats(USER)
        assert stats.progress_percent == 0
        assert stats.total_quizzes == 0

    def test_progress_percent_rounds(self, engine):
        engine.start(USER)
        assert engine.stats(USER).progress_percent == 33
        engine.advance(USER)
        assert engine.stats(USER).progress_percent == 67

    def test_percentages_round_half_up(self):
        catalog = CourseCatalog(
            blocks=[KnowledgeBlock(id=f"K{i}", content=f"Part {i}") for i in range(8)],
            final_test=[
                QuizBlock(id=f"F{i}", question=f"Final {i}", options=["yes", "no"], correct_option=0)
                for i in range(8)
            ],
        )
        engine = ProgressEngine(catalog, SessionStore())

        engine.start(USER)
        assert engine.stats(USER).progress_percent == 13
        for _ in range(2):
            engine.advance(USER)
        assert engine.stats(USER).progress_percent == 38

        for _ in range(6):
            engine.advance(USER)
        engine.start_final_test(USER)
        engine.record_answer(USER, True)
        for _ in range(7):
            engine.advance(USER)
            engine.record_answer(USER, False)
        assert engine.stats(USER).final_percent == 13


class TestLifecycle:
    def test_start_is_idempotent(self, engine):
        engine.start(USER)
        first = _comparable(engine.session(USER))
        engine.start(USER)
        assert _comparable(engine.session(USER)) == first

    def test_start_reinitializes_progress(self, engine):
        engine.start(USER)
        engine.advance(USER)
        engine.record_answer(USER, True)
        engine.start(USER)
        session = engine.session(USER)
        assert session.cursor == 0
        assert session.correct_count == 0
        assert session.answered_ids == set()

    def test_start_keeps_message_history(self, engine, store):
        store.get_or_create(USER).message_history.extend([1, 2])
        engine.start(USER)
        assert engine.session(USER).message_history == [1, 2]

    def test_start_issues_new_session_id(self, engine):
        engine.start(USER)
        first = engine.session(USER).session_id
        engine.start(USER)
        assert engine.session(USER).session_id != first

    def test_restart_purity(self, engine):
        engine.start(USER)
        engine.advance(USER)
        engine.record_answer(USER, True)
        engine.advance(USER)
        engine.reset(USER)
        engine.start(USER)

        engine.start(USER + 1)
        restarted = _comparable(engine.session(USER))
        fresh = _comparable(engine.session(USER + 1))
        restarted.pop("user_id")
        fresh.pop("user_id")
        assert restarted == fresh

    def test_reset_discards_session(self, engine, store):
        engine.start(USER)
        engine.reset(USER)
        assert USER not in store
        assert engine.current_block(USER) is None

    def test_resume_clamps_cursor(self, engine):
        assert engine.resume(USER, 99).id == "K2"
        assert engine.session(USER).cursor == 2
        assert engine.resume(USER, 1).id == "Quiz1"
        assert engine.session(USER).visited_count == 2
        assert engine.session(USER).quiz_run is not None

    def test_resume_negative_cursor(self, engine):
        assert engine.resume(USER, -5).id == "K0"


class TestRecovery:
    def test_out_of_range_cursor(self, engine):
        engine.start(USER)
        engine.session(USER).cursor = 17
        with pytest.raises(ContentLookupFailure):
            engine.current_block(USER)

    def test_recover_resets_cursor(self, engine):
        engine.start(USER)
        engine.session(USER).cursor = 17
        engine.recover(USER)
        assert engine.current_block(USER).id == "K0"

    def test_recover_without_session(self, engine, store):
        engine.recover(USER)
        assert USER not in store

    def test_new_session_before_first(self, store):
        assert store.get_or_create(USER).cursor == BEFORE_FIRST
