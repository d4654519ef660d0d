"""
Inbound event schemas for CourseBot.

Button payloads are decoded once at the transport boundary into typed
actions; nothing past the transport parses callback strings.

Payload format:
    next | prev | restart | reset | resume | final_test | answer:<question>:<option>
"""

from pydantic import BaseModel, Field
from typing import Annotated, Literal, Optional, Union


class StartAction(BaseModel):
    kind: Literal["start"] = "start"


class NextAction(BaseModel):
    kind: Literal["next"] = "next"


class PrevAction(BaseModel):
    kind: Literal["prev"] = "prev"


class RestartAction(BaseModel):
    kind: Literal["restart"] = "restart"


class ResetAction(BaseModel):
    kind: Literal["reset"] = "reset"


class ResumeAction(BaseModel):
    kind: Literal["resume"] = "resume"


class StartFinalTestAction(BaseModel):
    kind: Literal["final_test"] = "final_test"


class AnswerQuizAction(BaseModel):
    """Answer button; question_index is the cursor the quiz was rendered at."""
    kind: Literal["answer"] = "answer"
    question_index: int = Field(..., ge=0)
    option_index: int = Field(..., ge=0)


class UnrecognizedAction(BaseModel):
    """Free text, media or anything else the flow has no button for."""
    kind: Literal["unrecognized"] = "unrecognized"


Action = Annotated[
    Union[
        StartAction,
        NextAction,
        PrevAction,
        RestartAction,
        ResetAction,
        ResumeAction,
        StartFinalTestAction,
        AnswerQuizAction,
        UnrecognizedAction,
    ],
    Field(discriminator="kind"),
]


class UserProfile(BaseModel):
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class InboundEvent(BaseModel):
    user_id: int
    action: Action
    event_id: Optional[str] = None  # acknowledged so the client clears its spinner
    profile: UserProfile = Field(default_factory=UserProfile)


# -----------------------------------------------------------------------------
# Callback payload codec
# -----------------------------------------------------------------------------

_SIMPLE_ACTIONS = {
    "next": NextAction,
    "prev": PrevAction,
    "restart": RestartAction,
    "reset": ResetAction,
    "resume": ResumeAction,
    "final_test": StartFinalTestAction,
}


def encode_action(action) -> str:
    """Encode an action into a button payload."""
    if isinstance(action, AnswerQuizAction):
        return f"answer:{action.question_index}:{action.option_index}"
    if action.kind not in _SIMPLE_ACTIONS:
        raise ValueError(f"Action cannot be attached to a button: {action.kind}")
    return action.kind


def decode_action(data: str):
    """
    Decode a button payload into a typed action.

    Raises:
        ValueError: If the payload is not a known action
    """
    if data in _SIMPLE_ACTIONS:
        return _SIMPLE_ACTIONS[data]()

    parts = data.split(":")
    if len(parts) == 3 and parts[0] == "answer":
        try:
            question_index, option_index = int(parts[1]), int(parts[2])
        except ValueError:
            raise ValueError(f"Malformed answer payload: {data!r}") from None
        return AnswerQuizAction(question_index=question_index, option_index=option_index)

    raise ValueError(f"Unknown action payload: {data!r}")
