"""Reminder service tests."""

import asyncio
from datetime import datetime, timedelta

import pytest

from coursebot.chat import EphemeralMessageManager, ReminderService
from coursebot.classroom import UserRecordStore
from coursebot.schemas import UserRecord


NOW = datetime(2024, 5, 10, 12, 0)


def _records(tmp_path):
    records = UserRecordStore(tmp_path / "bot.db", clock=lambda: NOW - timedelta(days=10))
    records.update_cursor(1, 3)
    records.update_cursor(2, 0)
    records.update_cursor(3, 1)
    records.clock = lambda: NOW
    records.update_cursor(4, 2)
    return records


class TestReminderService:
    def test_reminds_inactive_users(self, tmp_path, transport):
        service = ReminderService(_records(tmp_path), transport, inactive_days=3)

        assert asyncio.run(service.check_inactive_users()) == 2
        assert sorted(uid for uid, _, _ in transport.sent) == [1, 3]
        assert [a.kind for a in transport.visible_actions(1)] == ["resume", "restart"]

    def test_reminder_tracked_as_live_message(self, tmp_path, transport, store):
        messages = EphemeralMessageManager(store, transport)
        service = ReminderService(_records(tmp_path), transport, messages=messages)

        asyncio.run(service.check_inactive_users())
        assert len(messages.live_messages(1)) == 1
        assert messages.live_messages(4) == []

    def test_send_failure_counts_as_not_sent(self, tmp_path, transport):
        service = ReminderService(_records(tmp_path), transport)
        transport.fail_sends = 1

        assert asyncio.run(service.check_inactive_users()) == 1

    def test_run_checks_until_cancelled(self, tmp_path, transport):
        service = ReminderService(_records(tmp_path), transport)

        async def scenario():
            task = asyncio.create_task(service.run(interval_hours=1, initial_delay=0))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert len(transport.sent) == 2

    def test_send_reminder(self, transport):
        service = ReminderService(None, transport)
        assert asyncio.run(service.send_reminder(UserRecord(user_id=9, current_step=1)))
        transport.fail_send = True
        assert not asyncio.run(service.send_reminder(UserRecord(user_id=9, current_step=1)))

    def test_run_survives_failed_check(self, tmp_path, transport):
        records = _records(tmp_path)
        calls = []

        def flaky_inactive_users(days):
            calls.append(days)
            if len(calls) == 1:
                raise RuntimeError("records unavailable")
            return UserRecordStore.get_inactive_users(records, days)

        records.get_inactive_users = flaky_inactive_users
        service = ReminderService(records, transport)

        async def scenario():
            task = asyncio.create_task(service.run(interval_hours=0.00001, initial_delay=0))
            await asyncio.sleep(0.2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert len(calls) >= 2
        assert {uid for uid, _, _ in transport.sent} == {1, 3}

    def test_reminder_waits_for_session_lock(self, transport, store):
        messages = EphemeralMessageManager(store, transport)
        service = ReminderService(None, transport, messages=messages)

        async def scenario():
            lock = store.lock(9)
            await lock.acquire()
            task = asyncio.create_task(service.send_reminder(UserRecord(user_id=9, current_step=1)))
            for _ in range(3):
                await asyncio.sleep(0)
            assert transport.sent == []
            lock.release()
            return await task

        assert asyncio.run(scenario())
        assert len(transport.sent) == 1
        assert len(messages.live_messages(9)) == 1
