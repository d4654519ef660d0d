"""
CourseBot Chat - Conversation flow over a chat transport.

This module provides:
- Transport: Protocol implemented by chat network adapters
- EphemeralMessageManager: One visible turn per user
- FlowOrchestrator: Event dispatch, rendering and error recovery
- ReminderService: Nudges for inactive users
- ConsoleTransport: Terminal transport for local runs
"""

from .transport import Transport

from .messages import EphemeralMessageManager

from .orchestrator import (
    FlowOrchestrator,
    ContinueGuard,
    DEFAULT_CONTINUE_DELAY,
)

from .reminders import (
    ReminderService,
    DEFAULT_INACTIVE_DAYS,
    DEFAULT_INTERVAL_HOURS,
)

from .console import ConsoleTransport

__all__ = [
    # Transport
    "Transport",
    "ConsoleTransport",
    # Messages
    "EphemeralMessageManager",
    # Orchestrator
    "FlowOrchestrator",
    "ContinueGuard",
    "DEFAULT_CONTINUE_DELAY",
    # Reminders
    "ReminderService",
    "DEFAULT_INACTIVE_DAYS",
    "DEFAULT_INTERVAL_HOURS",
]
