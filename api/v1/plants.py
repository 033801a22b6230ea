from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_current_user, get_plant_store
from core.exceptions import NotFoundError, ValidationError
from models.user import User
from schemas.plant import PlantRecord, PlantRecordCreate, PlantRecordUpdate
from services.plant_store import PlantRecordStore, parse_user_id

router = APIRouter(prefix="/plants", tags=["Plants"])


def _forbidden():
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only access your own plants",
    )


@router.post("", response_model=PlantRecord, status_code=status.HTTP_201_CREATED)
async def create_plant(
        payload: PlantRecordCreate,
        current_user: User = Depends(get_current_user),
        store: PlantRecordStore = Depends(get_plant_store),
):
    # the body may omit userId; when present it has to be the caller
    if payload.user_id is not None and payload.user_id != str(current_user.id):
        raise _forbidden()

    try:
        return await store.create(payload, current_user.id)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/record/{plant_id}", response_model=PlantRecord)
async def get_plant(
        plant_id: str,
        current_user: User = Depends(get_current_user),
        store: PlantRecordStore = Depends(get_plant_store),
):
    try:
        return await store.get(plant_id, current_user.id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Plant not found")


@router.get("/{user_id}", response_model=List[PlantRecord])
async def list_plants(
        user_id: str,
        current_user: User = Depends(get_current_user),
        store: PlantRecordStore = Depends(get_plant_store),
):
    owner_id = parse_user_id(user_id)
    if owner_id is None:
        raise HTTPException(status_code=404, detail="User not found")
    if owner_id != current_user.id:
        raise _forbidden()

    return await store.list(owner_id)


@router.put("/{plant_id}", response_model=PlantRecord)
async def update_plant(
        plant_id: str,
        changes: PlantRecordUpdate,
        current_user: User = Depends(get_current_user),
        store: PlantRecordStore = Depends(get_plant_store),
):
    try:
        return await store.update(plant_id, changes, current_user.id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Plant not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{plant_id}")
async def delete_plant(
        plant_id: str,
        current_user: User = Depends(get_current_user),
        store: PlantRecordStore = Depends(get_plant_store),
):
    await store.delete(plant_id, current_user.id)
    return {"status": "deleted", "id": plant_id}
