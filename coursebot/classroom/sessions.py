"""
SessionStore - In-memory per-user session state.

Holds one SessionState and one asyncio.Lock per user id. Sessions live
for the process lifetime; a process restart is equivalent to resetting
every user.
"""

import asyncio
from typing import Optional

from coursebot.schemas import SessionState


class SessionStore:
    """
    Mapping from user id to mutable SessionState.

    Locks are kept apart from sessions so that deleting a session while a
    task holds the user's lock does not hand a second task a fresh lock.
    """

    def __init__(self):
        self._sessions: dict[int, SessionState] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, user_id: int) -> Optional[SessionState]:
        """Get the session for a user, or None if there is none."""
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int) -> SessionState:
        """Get the session for a user, creating a NOT_STARTED one on first contact."""
        session = self._sessions.get(user_id)
        if session is None:
            session = SessionState(user_id=user_id)
            self._sessions[user_id] = session
        return session

    def put(self, session: SessionState):
        """Store (or replace) a user's session."""
        self._sessions[session.user_id] = session

    def delete(self, user_id: int) -> bool:
        """Discard a user's session. Returns True if one existed."""
        return self._sessions.pop(user_id, None) is not None

    def lock(self, user_id: int) -> asyncio.Lock:
        """Per-user serialization point for event handling."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
