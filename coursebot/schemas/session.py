"""
Session schemas for CourseBot.

Defines Pydantic models for per-user runtime state:
- Session mode (state machine position)
- Session state (cursor, counters, live messages)
- Quiz run state (only while a quiz block is open)
- Progress statistics
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum
from uuid import uuid4


BEFORE_FIRST = -1


class SessionMode(str, Enum):
    NOT_STARTED = "not_started"
    IN_COURSE = "in_course"
    IN_FINAL_TEST = "in_final_test"
    COMPLETED = "completed"


class QuizRunState(BaseModel):
    quiz_id: str
    current_question_index: int = Field(..., ge=0)  # cursor the quiz was entered at
    score: int = 0


class SessionState(BaseModel):
    """
    Mutable progress of one user.

    cursor indexes the course blocks while mode is IN_COURSE and the final
    test otherwise. finished marks the "after last" position of the course:
    the cursor stays on the last block and completion has been signalled.
    """
    user_id: int
    session_id: str = Field(default_factory=lambda: uuid4().hex)
    mode: SessionMode = SessionMode.NOT_STARTED
    cursor: int = BEFORE_FIRST
    finished: bool = False

    visited_count: int = 0
    correct_count: int = 0
    quiz_count: int = 0
    final_score: int = 0
    final_total: int = 0

    answered_ids: set[str] = Field(default_factory=set)
    quiz_run: Optional[QuizRunState] = None

    # Owned by EphemeralMessageManager
    message_history: list[int] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.mode in (SessionMode.IN_COURSE, SessionMode.IN_FINAL_TEST)


class ProgressStats(BaseModel):
    progress_percent: int
    correct_answers: int
    total_quizzes: int
    final_score: int
    final_total: int
    final_percent: Optional[int] = None  # only once final_total > 0
