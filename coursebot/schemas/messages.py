"""
Outbound message schemas for CourseBot.

A message is text (Markdown), optional media and rows of buttons.
Transports turn buttons into their own widgets, encoding each action
with encode_action().
"""

from pydantic import BaseModel
from typing import Optional

from .events import Action


class Affordance(BaseModel):
    """One button."""
    label: str
    action: Action


class OutboundMessage(BaseModel):
    text: str
    affordances: list[list[Affordance]] = []  # rows of buttons
    media: Optional[str] = None               # file reference; text becomes the caption

    @property
    def actions(self) -> list:
        """All attached actions, row by row."""
        return [button.action for row in self.affordances for button in row]
