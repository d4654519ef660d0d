"""
CourseBot Viewer - Rendering components for chat messages.

This module provides:
- Block rendering (knowledge, quiz) with navigation buttons
- Answer feedback and continue prompts
- Completion screens and quiz scoring
- Greeting, reminder and fallback messages
"""

from .render import (
    navigation_row,
    restart_row,
    render_knowledge,
    render_quiz,
    render_block,
    render_media_fallback,
    render_answer_feedback,
    render_continue_prompt,
    calculate_quiz_score,
    quiz_verdict,
    final_verdict,
    render_course_completed,
    render_final_test_intro,
    render_final_results,
    days_text,
    is_returning,
    render_greeting,
    render_resume_offer,
    render_reminder,
    render_reset_done,
    render_unrecognized,
    render_fallback,
    SESSION_EXPIRED_TEXT,
)

__all__ = [
    "navigation_row",
    "restart_row",
    "render_knowledge",
    "render_quiz",
    "render_block",
    "render_media_fallback",
    "render_answer_feedback",
    "render_continue_prompt",
    "calculate_quiz_score",
    "quiz_verdict",
    "final_verdict",
    "render_course_completed",
    "render_final_test_intro",
    "render_final_results",
    "days_text",
    "is_returning",
    "render_greeting",
    "render_resume_offer",
    "render_reminder",
    "render_reset_done",
    "render_unrecognized",
    "render_fallback",
    "SESSION_EXPIRED_TEXT",
]
