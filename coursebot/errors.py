"""
Exception hierarchy for CourseBot.

Every per-event failure ends at the flow orchestrator, which converts it
into a fallback message with a restart button. CatalogError is the only
one raised at startup and is meant to stop the process.
"""


class CourseBotError(Exception):
    """Base class for all CourseBot errors."""
    pass


class CatalogError(CourseBotError):
    """Course catalog file is missing, malformed or empty."""
    pass


class NoActiveSession(CourseBotError):
    """Operation attempted before the user started the course."""

    def __init__(self, user_id: int):
        super().__init__(f"No active session for user {user_id}")
        self.user_id = user_id


class BoundaryViolation(CourseBotError):
    """Navigation past a boundary that has no further state to move to."""
    pass


class ContentLookupFailure(CourseBotError):
    """Session cursor does not resolve to a block in the catalog."""

    def __init__(self, user_id: int, cursor: int):
        super().__init__(f"No block at cursor {cursor} for user {user_id}")
        self.user_id = user_id
        self.cursor = cursor


class TransportFailure(CourseBotError):
    """A send, delete or acknowledge call to the chat transport failed."""
    pass
