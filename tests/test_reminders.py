from datetime import datetime, timedelta, timezone

import pytest

from client.reminders import (
    FERTILIZE,
    WATER,
    InMemoryReminderScheduler,
    ReminderService,
    plan_reminders,
)
from schemas.plant import PlantRecord

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _record(**care):
    return PlantRecord(id="p-1", user_id="1", name="Monstera Deliciosa", **care)


def test_no_schedule_no_reminders():
    assert plan_reminders(_record(), now=NOW) == []


def test_next_watering_follows_last_watered():
    record = _record(watering_frequency_days=7, last_watered=NOW - timedelta(days=2))

    (reminder,) = plan_reminders(record, now=NOW)

    assert reminder.kind == WATER
    assert reminder.due_at == NOW + timedelta(days=5)
    assert reminder.message == "Time to water your Monstera Deliciosa 💧"


@pytest.mark.parametrize("last_watered", [None, NOW - timedelta(days=30)])
def test_never_watered_or_overdue_is_due_now(last_watered):
    record = _record(watering_frequency_days=7, last_watered=last_watered)
    (reminder,) = plan_reminders(record, now=NOW)
    assert reminder.due_at == NOW


def test_naive_timestamps_are_utc():
    record = _record(fertilizing_frequency_days=30, last_fertilized=datetime(2026, 10, 1, 9, 0))

    (reminder,) = plan_reminders(record, now=NOW)

    assert reminder.kind == FERTILIZE
    assert reminder.due_at == datetime(2026, 10, 31, 9, 0, tzinfo=timezone.utc)


def test_sync_replaces_previous_reminders():
    scheduler = InMemoryReminderScheduler()
    service = ReminderService(scheduler)
    record = _record(watering_frequency_days=7, fertilizing_frequency_days=30)

    service.sync(record, now=NOW)
    service.sync(record, now=NOW)

    assert len(scheduler.pending) == 2


def test_forget_cancels_everything_for_a_plant():
    scheduler = InMemoryReminderScheduler()
    service = ReminderService(scheduler)
    service.sync(_record(watering_frequency_days=7), now=NOW)

    service.forget("p-1")
    service.forget("p-1")

    assert scheduler.pending == {}


def test_due_reminders():
    scheduler = InMemoryReminderScheduler()
    service = ReminderService(scheduler)
    service.sync(_record(watering_frequency_days=3, last_watered=NOW - timedelta(days=1)), now=NOW)

    assert scheduler.due(NOW) == []
    due = scheduler.due(NOW + timedelta(days=2))
    assert [r.kind for r in due] == [WATER]
