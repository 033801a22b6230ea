import uuid

import pytest

from client.gateway import RecordGateway
from client.normalizer import normalize_health, normalize_identification
from core.exceptions import NotFoundError, ValidationError
from models.user import User
from schemas.plant import Classification, IsPlant, PlantRecordUpdate
from services.plant_store import PlantRecordStore, parse_user_id


@pytest.fixture
async def users(db):
    alice = await User.create(email="alice@example.com", password_hash="x")
    bob = await User.create(email="bob@example.com", password_hash="x")
    return alice, bob


@pytest.fixture
def store():
    return PlantRecordStore()


@pytest.fixture
def monstera(identification_payload, health_payload):
    return RecordGateway.build_record(
        normalize_identification(identification_payload),
        "file:///photos/monstera.jpg",
        normalize_health(health_payload),
    )


def _volatile_free(record):
    return record.model_dump(exclude={"name", "updated_at"})


@pytest.mark.parametrize("raw, expected", [
    (7, 7), ("7", 7), (" 12 ", 12), ("abc", None), ("0", None), ("-3", None), (None, None), (True, None),
])
def test_parse_user_id(raw, expected):
    assert parse_user_id(raw) == expected


async def test_create_then_list(store, users, monstera):
    alice, bob = users

    created = await store.create(monstera, alice.id)

    assert created.id
    assert created.user_id == str(alice.id)
    assert created.name == "Monstera Deliciosa"
    assert created.plant_health.is_healthy.binary is False
    assert created.access_token == "Ab12Cd34"

    mine = await store.list(alice.id)
    assert [p.id for p in mine] == [created.id]
    assert await store.list(bob.id) == []


async def test_suggestion_order_survives_storage(store, users, monstera):
    alice, _ = users

    created = await store.create(monstera, alice.id)
    fetched = await store.get(created.id, alice.id)

    assert fetched.access_token == "Ab12Cd34"
    assert [s.name for s in fetched.classification.suggestions] == [
        "Monstera Deliciosa",
        "Philodendron bipinnatifidum",
        "Epipremnum pinnatum",
    ]
    assert fetched.top_suggestion.details.description.citation == (
        "https://en.wikipedia.org/wiki/Monstera_deliciosa"
    )


async def test_create_from_camel_case_dict(store, users, monstera):
    alice, _ = users
    body = monstera.model_dump(by_alias=True, mode="json", exclude_none=True)

    created = await store.create(body, str(alice.id))

    assert created.classification.suggestions[0].details.common_names[0] == "Swiss cheese plant"


@pytest.mark.parametrize("changes", [
    {"name": None},
    {"name": "   "},
    {"classification": Classification()},
    {"is_plant": IsPlant(probability=0.1, binary=False, threshold=0.5)},
    {"is_plant": None},
])
async def test_create_rejects_incomplete_records(store, users, monstera, changes):
    alice, _ = users
    record = monstera.model_copy(update=changes)

    with pytest.raises(ValidationError):
        await store.create(record, alice.id)
    assert await store.list(alice.id) == []


async def test_create_requires_user(store, users, monstera):
    with pytest.raises(ValidationError):
        await store.create(monstera, None)


async def test_list_malformed_user(store, users):
    with pytest.raises(NotFoundError):
        await store.list("not-a-user")


async def test_list_is_ordered_by_creation(store, users, monstera):
    alice, _ = users
    first = await store.create(monstera, alice.id)
    second = await store.create(monstera.model_copy(update={"name": "Kitchen Monstera"}), alice.id)

    assert [p.id for p in await store.list(alice.id)] == [first.id, second.id]


async def test_rename_changes_only_the_name(store, users, monstera):
    alice, _ = users
    created = await store.create(monstera, alice.id)
    before = await store.get(created.id, alice.id)

    await store.update(created.id, PlantRecordUpdate(name="Monty"), alice.id)
    after = await store.get(created.id, alice.id)

    assert after.name == "Monty"
    assert _volatile_free(after) == _volatile_free(before)


async def test_update_care_fields(store, users, monstera):
    alice, _ = users
    created = await store.create(monstera, alice.id)

    updated = await store.update(created.id, {"wateringFrequencyDays": 7}, alice.id)

    assert updated.watering_frequency_days == 7
    assert updated.name == "Monstera Deliciosa"


async def test_update_never_clears_name(store, users, monstera):
    alice, _ = users
    created = await store.create(monstera, alice.id)

    updated = await store.update(created.id, {"name": None, "type": "aroid"}, alice.id)
    assert updated.name == "Monstera Deliciosa"
    assert updated.type == "aroid"

    with pytest.raises(ValidationError):
        await store.update(created.id, {"name": ""}, alice.id)


async def test_foreign_records_look_missing(store, users, monstera):
    alice, bob = users
    created = await store.create(monstera, alice.id)

    with pytest.raises(NotFoundError):
        await store.get(created.id, bob.id)
    with pytest.raises(NotFoundError):
        await store.update(created.id, {"name": "Mine now"}, bob.id)

    assert await store.delete(created.id, bob.id) is False
    assert (await store.get(created.id, alice.id)).name == "Monstera Deliciosa"


@pytest.mark.parametrize("plant_id", [str(uuid.uuid4()), "not-a-uuid"])
async def test_unknown_ids(store, users, plant_id):
    alice, _ = users

    with pytest.raises(NotFoundError):
        await store.get(plant_id, alice.id)
    with pytest.raises(NotFoundError):
        await store.update(plant_id, {"name": "x"}, alice.id)


async def test_delete_is_idempotent(store, users, monstera):
    alice, _ = users
    created = await store.create(monstera, alice.id)

    assert await store.delete(created.id, alice.id) is True
    assert await store.delete(created.id, alice.id) is False

    with pytest.raises(NotFoundError):
        await store.get(created.id, alice.id)
    assert await store.list(alice.id) == []
