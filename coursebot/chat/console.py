"""
ConsoleTransport - Play the course in a terminal.

Messages are printed as they are sent; buttons of every live message are
numbered so that the user can press them by typing the number.
"""

import sys
from typing import Optional, TextIO

from coursebot.schemas import Action, OutboundMessage


class ConsoleTransport:
    """Transport that prints to a text stream. Single user."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout
        self._next_id = 1
        self._live: dict[int, OutboundMessage] = {}

    def _print(self, text: str = ""):
        print(text, file=self.out, flush=True)

    async def send(self, user_id: int, message: OutboundMessage) -> int:
        message_id = self._next_id
        self._next_id += 1
        self._live[message_id] = message

        self._print()
        if message.media:
            self._print(f"[media: {message.media}]")
        self._print(message.text)
        if message.affordances:
            for number, label in self.button_labels(message_id):
                self._print(f"  [{number}] {label}")
        return message_id

    async def delete(self, user_id: int, message_id: int) -> bool:
        return self._live.pop(message_id, None) is not None

    async def answer_event(self, event_id: str) -> None:
        return None

    def _buttons(self) -> list[tuple[int, str, Action]]:
        """(message id, label, action) for every live button, in screen order."""
        return [
            (message_id, button.label, button.action)
            for message_id, message in self._live.items()
            for row in message.affordances
            for button in row
        ]

    def button_labels(self, message_id: int) -> list[tuple[int, str]]:
        """Screen numbers and labels of one message's buttons."""
        return [
            (number, label)
            for number, (owner, label, _) in enumerate(self._buttons(), start=1)
            if owner == message_id
        ]

    def press(self, number: int) -> Optional[Action]:
        """Action of the button with the given screen number, if any."""
        buttons = self._buttons()
        if 1 <= number <= len(buttons):
            return buttons[number - 1][2]
        return None
