"""
Transport interface between CourseBot and a chat network.

An adapter for a concrete network implements Transport, encodes button
actions with encode_action(), and raises TransportFailure for any
failed call. Nothing in CourseBot retries a transport call.
"""

from typing import Protocol, runtime_checkable

from coursebot.schemas import OutboundMessage


@runtime_checkable
class Transport(Protocol):
    """
    Chat transport.

    All calls may fail independently with TransportFailure.
    """

    async def send(self, user_id: int, message: OutboundMessage) -> int:
        """Send a message and return its id."""
        ...

    async def delete(self, user_id: int, message_id: int) -> bool:
        """Delete a message. Returns False if it was already gone."""
        ...

    async def answer_event(self, event_id: str) -> None:
        """Acknowledge a button press so the client clears its pending state."""
        ...
