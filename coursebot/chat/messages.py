"""
EphemeralMessageManager - Keep one visible turn per user.

Tracks the ids of messages sent to each user and deletes them once they
are superseded. Deletion is best-effort: the chat UI is not authoritative,
so a failed delete never aborts the caller's flow.
"""

import logging
from typing import Optional

from coursebot.classroom import SessionStore
from coursebot.errors import TransportFailure

from .transport import Transport


logger = logging.getLogger(__name__)


class EphemeralMessageManager:
    """
    Live message ids per user, stored in SessionState.message_history.

    Only ids passed to record_sent() are ever deleted.
    """

    def __init__(self, store: SessionStore, transport: Transport):
        self.store = store
        self.transport = transport

    def record_sent(self, user_id: int, message_id: int):
        """Track a message as live for the user."""
        self.store.get_or_create(user_id).message_history.append(message_id)

    def live_messages(self, user_id: int) -> list[int]:
        """Snapshot of the user's live message ids, oldest first."""
        session = self.store.get(user_id)
        return list(session.message_history) if session else []

    async def _delete(self, user_id: int, message_id: int):
        try:
            deleted = await self.transport.delete(user_id, message_id)
        except TransportFailure as e:
            logger.warning(f"Could not delete message {message_id} for user {user_id}: {e}")
            return
        if not deleted:
            logger.debug(f"Message {message_id} for user {user_id} was already gone")

    async def delete_last(self, user_id: int) -> Optional[int]:
        """
        Delete the most recent live message.

        Returns:
            The id that was removed from tracking, or None if there was none
        """
        session = self.store.get(user_id)
        if session is None or not session.message_history:
            return None
        message_id = session.message_history.pop()
        await self._delete(user_id, message_id)
        return message_id

    async def clear_all(self, user_id: int) -> int:
        """
        Delete every live message for the user, then forget them.

        Returns:
            Number of ids that were tracked
        """
        session = self.store.get(user_id)
        if session is None or not session.message_history:
            return 0
        message_ids = list(session.message_history)
        session.message_history.clear()
        for message_id in message_ids:
            await self._delete(user_id, message_id)
        return len(message_ids)
