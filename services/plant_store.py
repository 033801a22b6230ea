import uuid
from typing import List, Optional, Union

import pydantic

from core.exceptions import NotFoundError, ValidationError
from core.logger import db_logger
from models.plant import PlantRecord as PlantRecordModel
from schemas.plant import PlantRecord, PlantRecordCreate, PlantRecordUpdate

# fields a client may change after create
MUTABLE_FIELDS = (
    "name",
    "type",
    "watering_frequency_days",
    "last_watered",
    "fertilizing_frequency_days",
    "last_fertilized",
)


def parse_user_id(user_id) -> Optional[int]:
    if user_id is None or isinstance(user_id, bool):
        return None
    try:
        value = int(str(user_id).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def _parse_plant_id(plant_id) -> Optional[uuid.UUID]:
    if isinstance(plant_id, uuid.UUID):
        return plant_id
    try:
        return uuid.UUID(str(plant_id))
    except ValueError:
        return None


class PlantRecordStore:
    """
    Authoritative CRUD over plant records.

    Every operation is scoped by the caller's user id: a record owned by
    somebody else behaves exactly like a record that does not exist.
    Concurrent writes are last-write-wins.
    """

    async def create(self, payload: Union[PlantRecordCreate, dict], user_id) -> PlantRecord:
        if isinstance(payload, dict):
            try:
                payload = PlantRecordCreate.model_validate(payload)
            except pydantic.ValidationError as e:
                raise ValidationError(str(e))

        owner_id = parse_user_id(user_id)
        if owner_id is None:
            raise ValidationError("userId is required")

        name = (payload.name or "").strip()
        if not name:
            raise ValidationError("name is required")
        if not payload.classification.suggestions:
            raise ValidationError("classification.suggestions must not be empty")
        if payload.is_plant is None or not payload.is_plant.binary:
            raise ValidationError("only images recognized as plants can be stored")

        try:
            plant = await PlantRecordModel.create(
                user_id=owner_id,
                name=name,
                type=payload.type,
                image=payload.image,
                is_plant=payload.is_plant.model_dump(by_alias=True, mode="json"),
                classification=payload.classification.model_dump(by_alias=True, mode="json"),
                plant_health=(
                    payload.plant_health.model_dump(by_alias=True, mode="json")
                    if payload.plant_health else None
                ),
                model_version=payload.model_version,
                access_token=payload.access_token,
                recognized_at=payload.recognized_at,
                recognition_completed_at=payload.recognition_completed_at,
                watering_frequency_days=payload.watering_frequency_days,
                last_watered=payload.last_watered,
                fertilizing_frequency_days=payload.fertilizing_frequency_days,
                last_fertilized=payload.last_fertilized,
            )
        except Exception as e:
            db_logger.log_error("create PlantRecord", e)
            raise

        db_logger.log_create("PlantRecord", {
            "id": str(plant.id),
            "user_id": owner_id,
            "name": name,
            "suggestions": len(payload.classification.suggestions),
        })

        return self.serialize(plant)

    async def list(self, user_id) -> List[PlantRecord]:
        owner_id = parse_user_id(user_id)
        if owner_id is None:
            raise NotFoundError(f"unknown user id: {user_id!r}")

        plants = await PlantRecordModel.filter(user_id=owner_id).order_by("created_at")

        db_logger.logger.debug(f"Retrieved {len(plants)} plants for user={owner_id}")

        return [self.serialize(p) for p in plants]

    async def get(self, plant_id, user_id) -> PlantRecord:
        plant = await self._get_owned(plant_id, user_id)
        return self.serialize(plant)

    async def update(self, plant_id, changes: Union[PlantRecordUpdate, dict], user_id) -> PlantRecord:
        if isinstance(changes, dict):
            try:
                changes = PlantRecordUpdate.model_validate(changes)
            except pydantic.ValidationError as e:
                raise ValidationError(str(e))

        plant = await self._get_owned(plant_id, user_id)

        data = changes.model_dump(exclude_unset=True)
        # name can be changed but never cleared
        if data.get("name") is None:
            data.pop("name", None)
        data = {k: v for k, v in data.items() if k in MUTABLE_FIELDS}

        if not data:
            return self.serialize(plant)

        if "name" in data:
            data["name"] = data["name"].strip()
            if not data["name"]:
                raise ValidationError("name must not be blank")

        for field, value in data.items():
            setattr(plant, field, value)
        await plant.save(update_fields=[*data.keys(), "updated_at"])

        db_logger.log_update("PlantRecord", plant.id, data)

        return self.serialize(plant)

    async def delete(self, plant_id, user_id) -> bool:
        """Idempotent: deleting a missing record is a successful no-op."""
        pid = _parse_plant_id(plant_id)
        owner_id = parse_user_id(user_id)
        if pid is None or owner_id is None:
            db_logger.log_delete("PlantRecord", plant_id, deleted=False)
            return False

        deleted_count = await PlantRecordModel.filter(id=pid, user_id=owner_id).delete()
        if not deleted_count and await PlantRecordModel.filter(id=pid).exists():
            db_logger.log_denied("PlantRecord", pid, owner_id)

        db_logger.log_delete("PlantRecord", pid, deleted=bool(deleted_count))
        return bool(deleted_count)

    async def _get_owned(self, plant_id, user_id) -> PlantRecordModel:
        pid = _parse_plant_id(plant_id)
        owner_id = parse_user_id(user_id)
        if pid is None or owner_id is None:
            raise NotFoundError(f"plant {plant_id} not found")

        plant = await PlantRecordModel.get_or_none(id=pid)
        if plant is None:
            db_logger.logger.warning(f"Plant {pid} not found")
            raise NotFoundError(f"plant {plant_id} not found")
        if plant.user_id != owner_id:
            db_logger.log_denied("PlantRecord", pid, owner_id)
            raise NotFoundError(f"plant {plant_id} not found")
        return plant

    @staticmethod
    def serialize(plant: PlantRecordModel) -> PlantRecord:
        return PlantRecord(
            id=str(plant.id),
            user_id=str(plant.user_id),
            name=plant.name,
            type=plant.type,
            image=plant.image,
            is_plant=plant.is_plant,
            classification=plant.classification,
            plant_health=plant.plant_health,
            model_version=plant.model_version,
            access_token=plant.access_token,
            recognized_at=plant.recognized_at,
            recognition_completed_at=plant.recognition_completed_at,
            watering_frequency_days=plant.watering_frequency_days,
            last_watered=plant.last_watered,
            fertilizing_frequency_days=plant.fertilizing_frequency_days,
            last_fertilized=plant.last_fertilized,
            created_at=plant.created_at,
            updated_at=plant.updated_at,
        )
