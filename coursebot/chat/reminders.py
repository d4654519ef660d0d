"""
ReminderService - Nudge users who left the course unfinished.

Once per interval, every user with a saved resume point and no activity
for `inactive_days` gets a reminder with "continue" and "start over"
buttons.
"""

import asyncio
import logging
from typing import Optional

from coursebot.classroom import UserRecordStore
from coursebot.errors import TransportFailure
from coursebot.schemas import UserRecord
from coursebot.viewer import render_reminder

from .messages import EphemeralMessageManager
from .transport import Transport


logger = logging.getLogger(__name__)

DEFAULT_INACTIVE_DAYS = 3
DEFAULT_INTERVAL_HOURS = 24
DEFAULT_INITIAL_DELAY = 60  # seconds after startup before the first check


class ReminderService:
    def __init__(
        self,
        records: UserRecordStore,
        transport: Transport,
        messages: Optional[EphemeralMessageManager] = None,
        inactive_days: int = DEFAULT_INACTIVE_DAYS,
    ):
        self.records = records
        self.transport = transport
        self.messages = messages
        self.inactive_days = inactive_days

    async def send_reminder(self, record: UserRecord) -> bool:
        """
        Send one reminder. Returns False if the transport refused it.

        With a message manager attached, the send and the history update run
        under the user's session lock so they cannot interleave with a turn.
        """
        if self.messages is None:
            return await self._send(record)
        async with self.messages.store.lock(record.user_id):
            return await self._send(record)

    async def _send(self, record: UserRecord) -> bool:
        try:
            message_id = await self.transport.send(record.user_id, render_reminder())
        except TransportFailure as e:
            logger.warning(f"Could not remind user {record.user_id}: {e}")
            return False
        if self.messages is not None:
            self.messages.record_sent(record.user_id, message_id)
        return True

    async def check_inactive_users(self) -> int:
        """Remind every inactive user. Returns the number of reminders sent."""
        users = self.records.get_inactive_users(self.inactive_days)
        sent = 0
        for user in users:
            if await self.send_reminder(user):
                sent += 1
        logger.info(f"Sent reminders to {sent} of {len(users)} inactive users")
        return sent

    async def run(
        self,
        interval_hours: float = DEFAULT_INTERVAL_HOURS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ):
        """Check for inactive users forever, starting after `initial_delay` seconds."""
        await asyncio.sleep(initial_delay)
        while True:
            try:
                await self.check_inactive_users()
            except Exception:
                logger.exception("Reminder check failed")
            await asyncio.sleep(interval_hours * 3600)
