"""Shared fixtures: a small catalog, an engine over it and an in-memory transport."""

import pytest

from coursebot.chat import FlowOrchestrator
from coursebot.classroom import ProgressEngine, SessionStore
from coursebot.errors import TransportFailure
from coursebot.schemas import CourseCatalog, KnowledgeBlock, QuizBlock


def make_catalog(final_questions: int = 2) -> CourseCatalog:
    """K0, Quiz1, K2 course with a final test of `final_questions` questions."""
    return CourseCatalog(
        title="Test course",
        introduction="Intro text",
        blocks=[
            KnowledgeBlock(id="K0", content="Knowledge zero"),
            QuizBlock(
                id="Quiz1",
                question="Pick B",
                options=["A", "B", "C"],
                correct_option=1,
                explanation="B is right",
            ),
            KnowledgeBlock(id="K2", content="Knowledge two"),
        ],
        final_test=[
            QuizBlock(
                id=f"F{i}",
                question=f"Final {i}",
                options=["yes", "no"],
                correct_option=0,
            )
            for i in range(final_questions)
        ],
    )


class RecordingTransport:
    """Transport that keeps every call in memory."""

    def __init__(self):
        self._next_id = 100
        self.sent = []          # (user_id, message_id, message)
        self.deleted = []       # (user_id, message_id)
        self.acknowledged = []  # event ids
        self.live = {}          # (user_id, message_id) -> message
        self.fail_send = False
        self.fail_sends = 0     # fail this many upcoming sends
        self.fail_media = False
        self.fail_delete = False
        self.fail_ack = False

    async def send(self, user_id, message):
        if self.fail_sends > 0:
            self.fail_sends -= 1
            raise TransportFailure("send failed")
        if self.fail_send or (self.fail_media and message.media):
            raise TransportFailure("send failed")
        message_id = self._next_id
        self._next_id += 1
        self.sent.append((user_id, message_id, message))
        self.live[(user_id, message_id)] = message
        return message_id

    async def delete(self, user_id, message_id):
        if self.fail_delete:
            raise TransportFailure("delete failed")
        self.deleted.append((user_id, message_id))
        return self.live.pop((user_id, message_id), None) is not None

    async def answer_event(self, event_id):
        if self.fail_ack:
            raise TransportFailure("ack failed")
        self.acknowledged.append(event_id)

    def visible(self, user_id):
        """Messages still on the user's screen, oldest first."""
        return [m for (uid, _), m in self.live.items() if uid == user_id]

    def visible_texts(self, user_id):
        return [m.text for m in self.visible(user_id)]

    def visible_actions(self, user_id):
        return [a for m in self.visible(user_id) for a in m.actions]


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def engine(catalog, store):
    return ProgressEngine(catalog, store)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def orchestrator(engine, transport):
    return FlowOrchestrator(engine, transport, continue_delay=0)
