"""
Message renderer - Build outbound chat messages from course state.

Provides:
- Knowledge and quiz block rendering with navigation buttons
- Answer feedback and the post-answer continue prompt
- Course completion and final test result screens
- Greeting, resume offer, reminder and fallback messages

All functions are pure: they return OutboundMessage objects and never
touch the transport.
"""

from typing import Optional

from coursebot.schemas import (
    Affordance,
    AnswerQuizAction,
    Block,
    KnowledgeBlock,
    NextAction,
    OutboundMessage,
    PrevAction,
    ProgressStats,
    QuizBlock,
    RestartAction,
    ResumeAction,
    StartFinalTestAction,
    UserRecord,
)
from coursebot.utils import percent_of


NEXT_LABEL = "➡️ Next"
BACK_LABEL = "◀️ Back"
CONTINUE_LABEL = "➡️ Continue"
RESTART_LABEL = "🔄 Start over"
FINAL_TEST_LABEL = "📝 Begin final test"
RESUME_LABEL = "▶️ Continue where I left off"

DEFAULT_AUDIO_CAPTION = "🎵 Audio recording"
FALLBACK_TEXT = "⚠️ *Something went wrong.* Please start again."
SESSION_EXPIRED_TEXT = "⌛ Your session has expired. Please start again."


# -----------------------------------------------------------------------------
# Buttons
# -----------------------------------------------------------------------------

def navigation_row(can_retreat: bool, show_next: bool = True, next_label: str = NEXT_LABEL) -> list[Affordance]:
    """Back/Next buttons for a block."""
    row = []
    if can_retreat:
        row.append(Affordance(label=BACK_LABEL, action=PrevAction()))
    if show_next:
        row.append(Affordance(label=next_label, action=NextAction()))
    return row


def restart_row() -> list[Affordance]:
    return [Affordance(label=RESTART_LABEL, action=RestartAction())]


def _rows(*rows: list[Affordance]) -> list[list[Affordance]]:
    """Drop empty rows."""
    return [row for row in rows if row]


# -----------------------------------------------------------------------------
# Blocks
# -----------------------------------------------------------------------------

def render_knowledge(block: KnowledgeBlock, can_retreat: bool) -> list[OutboundMessage]:
    """
    Render a knowledge block.

    With media, the text goes first and the media carries the caption and
    the buttons, so the buttons stay on the last message of the turn.
    """
    buttons = _rows(navigation_row(can_retreat))
    if not block.media:
        return [OutboundMessage(text=block.content, affordances=buttons)]

    messages = []
    if block.content:
        messages.append(OutboundMessage(text=block.content))
    messages.append(OutboundMessage(
        text=block.caption or DEFAULT_AUDIO_CAPTION,
        media=block.media,
        affordances=buttons,
    ))
    return messages


def render_quiz(
    block: QuizBlock,
    question_index: int,
    position: tuple[int, int],
    can_retreat: bool,
    answered: bool = False,
) -> OutboundMessage:
    """
    Render a quiz block as an interactive prompt.

    Args:
        block: Quiz to render
        question_index: Cursor the answer buttons are bound to
        position: (current, total) within the active sequence
        can_retreat: Whether to offer a Back button
        answered: Render the already-answered variant with plain navigation
    """
    current, total = position
    text = f"❓ *Question {current} of {total}*\n\n{block.question}"

    if answered:
        text += "\n\n_You have already answered this question._"
        return OutboundMessage(text=text, affordances=_rows(navigation_row(can_retreat)))

    option_rows = [
        [Affordance(
            label=option,
            action=AnswerQuizAction(question_index=question_index, option_index=idx),
        )]
        for idx, option in enumerate(block.options)
    ]
    return OutboundMessage(
        text=text,
        affordances=_rows(*option_rows, navigation_row(can_retreat, show_next=False), restart_row()),
    )


def render_block(
    block: Block,
    question_index: int,
    position: tuple[int, int],
    can_retreat: bool,
    answered: bool = False,
) -> list[OutboundMessage]:
    """Render any block into the messages of one turn."""
    if isinstance(block, QuizBlock):
        return [render_quiz(block, question_index, position, can_retreat, answered)]
    return render_knowledge(block, can_retreat)


def render_media_fallback(message: OutboundMessage) -> OutboundMessage:
    """Text stand-in for a media message that could not be sent."""
    return OutboundMessage(
        text="❌ Could not load the audio recording. Let's continue with the text.",
        affordances=message.affordances,
    )


# -----------------------------------------------------------------------------
# Answers
# -----------------------------------------------------------------------------

def render_answer_feedback(block: QuizBlock, is_correct: bool) -> OutboundMessage:
    """Correct/incorrect verdict with the block's explanation."""
    if is_correct:
        text = "✅ *Correct!*"
    else:
        text = f"❌ *Not quite.* The right answer: {block.options[block.correct_option]}"
    if block.explanation:
        text += f"\n\n{block.explanation}"
    return OutboundMessage(text=text)


def render_continue_prompt(
    can_retreat: bool,
    in_final_test: bool = False,
    last_question: bool = False,
) -> OutboundMessage:
    """
    Next-step prompt offered after the post-answer pause.

    In the final test, the prompt after the last question leads to the results.
    """
    if in_final_test:
        text = "See your results?" if last_question else "Ready for the next question?"
    else:
        text = "Shall we continue?"
    return OutboundMessage(
        text=text,
        affordances=_rows(navigation_row(can_retreat, next_label=CONTINUE_LABEL)),
    )


# -----------------------------------------------------------------------------
# Scoring
# -----------------------------------------------------------------------------

def calculate_quiz_score(correct_count: int, total: int) -> dict:
    """
    Calculate quiz score.

    Args:
        correct_count: Number answered correctly
        total: Number answered

    Returns:
        Dict with score info
    """
    if total == 0:
        return {"score": 1.0, "percent": 100, "correct": 0, "total": 0}

    score = correct_count / total
    return {
        "score": round(score, 2),
        "percent": percent_of(correct_count, total),
        "correct": correct_count,
        "total": total,
    }


def quiz_verdict(correct_count: int, total: int) -> str:
    """One-line verdict on the course quizzes."""
    if correct_count == total:
        return "🎉 Excellent! You have mastered the material."
    if correct_count >= total / 2:
        return "👍 Good result! The main ideas are in place; a review of the hard parts wouldn't hurt."
    return "📚 There is room to grow. We recommend reviewing the material."


def final_verdict(percent: int) -> str:
    """One-line verdict on the final test."""
    if percent >= 80:
        return "🎊 Excellent result! You have learned the material well."
    if percent >= 60:
        return "👍 Good result! You remembered the key points."
    return "📚 We recommend taking the course again to consolidate the material."


# -----------------------------------------------------------------------------
# Milestones
# -----------------------------------------------------------------------------

def render_course_completed(stats: ProgressStats) -> OutboundMessage:
    """Course completion screen with the final test gate."""
    lines = [
        "🎉 *Congratulations! You have completed the course!*",
        "",
        f"Your progress: {stats.progress_percent}%",
    ]
    if stats.total_quizzes > 0:
        lines.append(f"Correct quiz answers: {stats.correct_answers}/{stats.total_quizzes}")
        lines.append(quiz_verdict(stats.correct_answers, stats.total_quizzes))
    lines.extend(["", "Ready for the final test?"])

    return OutboundMessage(
        text="\n".join(lines),
        affordances=[
            [Affordance(label=FINAL_TEST_LABEL, action=StartFinalTestAction())],
            restart_row(),
        ],
    )


def render_final_test_intro(total: int) -> OutboundMessage:
    return OutboundMessage(
        text=f"📝 *Final test: {total} questions*\n\nAnswer every question to finish the course."
    )


def render_final_results(stats: ProgressStats) -> OutboundMessage:
    """Final test result screen."""
    score_info = calculate_quiz_score(stats.final_score, stats.final_total)
    text = (
        "🏆 *Final test completed!*\n\n"
        f"Your result: {score_info['correct']}/{score_info['total']} ({score_info['percent']}%)\n\n"
        f"{final_verdict(score_info['percent'])}"
    )
    return OutboundMessage(text=text, affordances=[restart_row()])


# -----------------------------------------------------------------------------
# Greetings and service messages
# -----------------------------------------------------------------------------

def days_text(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def is_returning(record: Optional[UserRecord], days_inactive: int) -> bool:
    """A user counts as returning after more than a day away with progress saved."""
    return record is not None and record.current_step > 0 and days_inactive > 1


def render_greeting(
    introduction: str,
    record: Optional[UserRecord] = None,
    days_inactive: int = 0,
) -> OutboundMessage:
    """Greeting shown on start, followed by the course introduction."""
    if is_returning(record, days_inactive):
        text = f"👋 Good to see you again! You are back after {days_text(days_inactive)}."
    else:
        text = "👋 Welcome!"
    if introduction:
        text += f"\n\n{introduction}"
    return OutboundMessage(text=text)


def render_resume_offer(record: UserRecord, days_inactive: int) -> OutboundMessage:
    """Offer to continue from the persisted cursor or start over."""
    if is_returning(record, days_inactive):
        text = f"👋 Good to see you again! You are back after {days_text(days_inactive)}. Shall we continue?"
    else:
        text = "👋 Welcome back! Shall we continue where you left off?"
    return OutboundMessage(
        text=text,
        affordances=[
            [Affordance(label=RESUME_LABEL, action=ResumeAction())],
            restart_row(),
        ],
    )


def render_reminder() -> OutboundMessage:
    """Nudge sent to inactive users."""
    return OutboundMessage(
        text="You haven't visited the course for a while. Shall we continue where you left off?",
        affordances=[
            [Affordance(label=RESUME_LABEL, action=ResumeAction())],
            restart_row(),
        ],
    )


def render_reset_done() -> OutboundMessage:
    return OutboundMessage(
        text="Progress reset. Press the button below to begin again.",
        affordances=[restart_row()],
    )


def render_unrecognized() -> OutboundMessage:
    return OutboundMessage(
        text="⚠️ *Please use the navigation buttons to work with the course.*",
        affordances=[restart_row()],
    )


def render_fallback(text: str = FALLBACK_TEXT) -> OutboundMessage:
    """User-facing fallback for any failed turn, always with a way out."""
    return OutboundMessage(text=text, affordances=[restart_row()])
