"""
CourseBot Schemas - Pydantic models for the conversational course runner.

This module exports all schema classes for:
- Course: knowledge and quiz blocks, course catalog
- Session: per-user progress state, quiz run, statistics
- Events: typed inbound actions and the button payload codec
- Messages: outbound messages and their buttons
- Records: persisted user records
"""

# Course schemas
from .course import (
    KnowledgeBlock,
    QuizBlock,
    Block,
    CourseCatalog,
)

# Session schemas
from .session import (
    BEFORE_FIRST,
    SessionMode,
    QuizRunState,
    SessionState,
    ProgressStats,
)

# Event schemas
from .events import (
    StartAction,
    NextAction,
    PrevAction,
    RestartAction,
    ResetAction,
    ResumeAction,
    StartFinalTestAction,
    AnswerQuizAction,
    UnrecognizedAction,
    Action,
    UserProfile,
    InboundEvent,
    encode_action,
    decode_action,
)

# Message schemas
from .messages import (
    Affordance,
    OutboundMessage,
)

# Record schemas
from .records import UserRecord

__all__ = [
    # Course
    'KnowledgeBlock',
    'QuizBlock',
    'Block',
    'CourseCatalog',
    # Session
    'BEFORE_FIRST',
    'SessionMode',
    'QuizRunState',
    'SessionState',
    'ProgressStats',
    # Events
    'StartAction',
    'NextAction',
    'PrevAction',
    'RestartAction',
    'ResetAction',
    'ResumeAction',
    'StartFinalTestAction',
    'AnswerQuizAction',
    'UnrecognizedAction',
    'Action',
    'UserProfile',
    'InboundEvent',
    'encode_action',
    'decode_action',
    # Messages
    'Affordance',
    'OutboundMessage',
    # Records
    'UserRecord',
]
