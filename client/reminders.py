import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol

from core.logger import app_logger
from schemas.plant import PlantRecord

WATER = "water"
FERTILIZE = "fertilize"


@dataclass(frozen=True)
class Reminder:
    plant_id: str
    plant_name: str
    kind: str
    due_at: datetime

    @property
    def message(self) -> str:
        if self.kind == WATER:
            return f"Time to water your {self.plant_name} 💧"
        return f"Time to fertilize your {self.plant_name} 🌱"


class ReminderScheduler(Protocol):
    """Port to whatever delivers local notifications on the device."""

    def schedule(self, reminder: Reminder) -> str:
        ...

    def cancel(self, token: str) -> None:
        ...


class InMemoryReminderScheduler:
    def __init__(self):
        self.pending: Dict[str, Reminder] = {}

    def schedule(self, reminder: Reminder) -> str:
        token = uuid.uuid4().hex
        self.pending[token] = reminder
        return token

    def cancel(self, token: str) -> None:
        self.pending.pop(token, None)

    def due(self, now: datetime = None) -> List[Reminder]:
        now = _as_utc(now or datetime.now(timezone.utc))
        return sorted(
            (r for r in self.pending.values() if _as_utc(r.due_at) <= now),
            key=lambda r: r.due_at,
        )


def _as_utc(value: datetime) -> datetime:
    # naive timestamps from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _next_due(last: Optional[datetime], every_days: int, now: datetime) -> datetime:
    if last is None:
        return now
    due = _as_utc(last) + timedelta(days=every_days)
    return max(due, now)


def plan_reminders(record: PlantRecord, now: datetime = None) -> List[Reminder]:
    """Watering / fertilizing reminders for a record; overdue ones are due now."""
    now = _as_utc(now or datetime.now(timezone.utc))
    reminders = []
    if record.watering_frequency_days:
        reminders.append(Reminder(
            plant_id=record.id,
            plant_name=record.name,
            kind=WATER,
            due_at=_next_due(record.last_watered, record.watering_frequency_days, now),
        ))
    if record.fertilizing_frequency_days:
        reminders.append(Reminder(
            plant_id=record.id,
            plant_name=record.name,
            kind=FERTILIZE,
            due_at=_next_due(record.last_fertilized, record.fertilizing_frequency_days, now),
        ))
    return reminders


class ReminderService:
    """Keeps exactly one set of scheduled reminders per plant."""

    def __init__(self, scheduler: ReminderScheduler):
        self.scheduler = scheduler
        self._tokens: Dict[str, List[str]] = {}

    def sync(self, record: PlantRecord, now: datetime = None) -> List[str]:
        self.forget(record.id)
        tokens = [self.scheduler.schedule(r) for r in plan_reminders(record, now)]
        if tokens:
            self._tokens[record.id] = tokens
            app_logger.debug(f"Scheduled {len(tokens)} reminders for plant {record.id}")
        return tokens

    def forget(self, plant_id: str):
        for token in self._tokens.pop(plant_id, []):
            self.scheduler.cancel(token)
