from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from client.gateway import RecordGateway
from client.plant_identifier import PlantIdentifierService
from client.reminders import ReminderService
from core.exceptions import (
    AuthRequiredError,
    ImageProcessingError,
    PlantAppError,
    PlantNotRecognizedError,
    RecognitionProtocolError,
    RecognitionUnavailableError,
    ValidationError,
)
from core.logger import app_logger
from schemas.plant import PlantRecord
from schemas.recognition import HealthResult, RecognitionResult

# user-facing copy; "not recognized" and "service down" must read differently
MSG_NOT_RECOGNIZED = "We couldn't recognize a plant in this photo. Try another photo with the plant clearly in view."
MSG_UNAVAILABLE = "The plant recognition service is unavailable right now. Please try again in a moment."
MSG_PROTOCOL = "Something went wrong while reading the recognition result. Please try again."
MSG_IMAGE = "This photo could not be processed. Please take another one."
MSG_AUTH = "Your session has expired. Please log in again."
MSG_STORE = "Your plant was recognized but could not be saved. Please try again."
MSG_INVALID = "Please check the values you entered and try again."
MSG_NO_CONVERSATION = "Questions are only available for plants identified with the current app version."


def message_for(error: PlantAppError) -> str:
    if isinstance(error, PlantNotRecognizedError):
        return MSG_NOT_RECOGNIZED
    if isinstance(error, RecognitionUnavailableError):
        return MSG_UNAVAILABLE
    if isinstance(error, RecognitionProtocolError):
        return MSG_PROTOCOL
    if isinstance(error, ImageProcessingError):
        return MSG_IMAGE
    if isinstance(error, AuthRequiredError):
        return MSG_AUTH
    if isinstance(error, ValidationError):
        return MSG_INVALID
    return MSG_STORE


@dataclass
class FlowOutcome:
    ok: bool
    message: str
    record: Optional[PlantRecord] = None
    recognition: Optional[RecognitionResult] = None
    health: Optional[HealthResult] = None
    error: Optional[PlantAppError] = None
    answer: Optional[str] = None


def _failure(error: PlantAppError, **kwargs) -> FlowOutcome:
    app_logger.warning(f"Flow stopped: {type(error).__name__}: {error}")
    return FlowOutcome(ok=False, message=message_for(error), error=error, **kwargs)


class IdentifyPlantFlow:
    """
    Photo -> recognition -> (health) -> stored record, as one user action.

    Never raises for the expected failures: each one becomes a FlowOutcome
    with copy the screen can show as a retry prompt. A failed health
    assessment does not stop a recognized plant from being stored.
    """

    def __init__(
            self,
            identifier: PlantIdentifierService,
            gateway: RecordGateway,
            reminders: ReminderService = None,
            assess_health: bool = True,
    ):
        self.identifier = identifier
        self.gateway = gateway
        self.reminders = reminders
        self.assess_health = assess_health

    def run(self, image: Union[str, Path]) -> FlowOutcome:
        try:
            # preprocess once for both calls
            encoded = self.identifier.encode(image)
            recognition = self.identifier.identify(encoded)
        except PlantAppError as e:
            return _failure(e)

        health = None
        if self.assess_health:
            try:
                health = self.identifier.assess_health(encoded)
            except PlantAppError as e:
                app_logger.warning(f"Health assessment failed, storing recognition only: {e}")

        try:
            record = self.gateway.build_record(recognition, str(image), health)
            created = self.gateway.submit(record)
        except PlantAppError as e:
            return _failure(e, recognition=recognition, health=health)

        if self.reminders is not None:
            self.reminders.sync(created)

        return FlowOutcome(
            ok=True,
            message=f"{created.name} was added to your plants.",
            record=created,
            recognition=recognition,
            health=health,
        )

class MyPlants:
    """
    The user's plant list as shown on the home screen.

    Local state changes only after the record service confirmed the write.
    """

    def __init__(self, gateway: RecordGateway, reminders: ReminderService = None):
        self.gateway = gateway
        self.reminders = reminders
        self.plants: List[PlantRecord] = []

    def refresh(self) -> List[PlantRecord]:
        self.plants = self.gateway.list_records()
        if self.reminders is not None:
            for plant in self.plants:
                self.reminders.sync(plant)
        return self.plants

    def add(self, record: PlantRecord):
        """Add a record the store already confirmed (e.g. FlowOutcome.record)."""
        self.plants = [p for p in self.plants if p.id != record.id] + [record]

    def remove(self, plant_id: str):
        self.gateway.delete_record(plant_id)
        self.plants = [p for p in self.plants if p.id != plant_id]
        if self.reminders is not None:
            self.reminders.forget(plant_id)

    def rename(self, plant_id: str, name: str) -> PlantRecord:
        return self._apply(self.gateway.update_record(plant_id, name=name))

    def mark_watered(self, plant_id: str, when: datetime = None) -> PlantRecord:
        when = when or datetime.now(timezone.utc)
        return self._apply(self.gateway.update_record(plant_id, last_watered=when))

    def mark_fertilized(self, plant_id: str, when: datetime = None) -> PlantRecord:
        when = when or datetime.now(timezone.utc)
        return self._apply(self.gateway.update_record(plant_id, last_fertilized=when))

    def set_schedule(self, plant_id: str, watering_days: int = None, fertilizing_days: int = None) -> PlantRecord:
        changes = {}
        if watering_days is not None:
            changes["watering_frequency_days"] = watering_days
        if fertilizing_days is not None:
            changes["fertilizing_frequency_days"] = fertilizing_days
        return self._apply(self.gateway.update_record(plant_id, **changes))

    def _apply(self, updated: PlantRecord) -> PlantRecord:
        self.plants = [updated if p.id == updated.id else p for p in self.plants]
        if self.reminders is not None:
            self.reminders.sync(updated)
        return updated


class PlantQuestions:
    """Follow-up questions about a stored plant, answered by Plant.id."""

    def __init__(self, identifier: PlantIdentifierService):
        self.identifier = identifier

    def ask(self, record: PlantRecord, question: str) -> FlowOutcome:
        if not record.access_token:
            return FlowOutcome(ok=False, message=MSG_NO_CONVERSATION, record=record)
        try:
            answer = self.identifier.ask(record.access_token, question)
        except PlantAppError as e:
            return _failure(e, record=record)
        return FlowOutcome(ok=True, message=answer, record=record, answer=answer)
