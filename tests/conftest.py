import copy
import json
import os
import sys
import tempfile

# settings are read once at import time
_TMP_DIR = tempfile.mkdtemp(prefix="plantcare-tests-")
os.environ["DB_URL"] = "sqlite://:memory:"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PLANT_ID_API_KEY"] = "test-api-key"

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import Mock

import pytest
from PIL import Image
from tortoise import Tortoise

MONSTERA_RESPONSE = {
    "access_token": "Ab12Cd34",
    "model_version": "plant_id:3.6.0",
    "custom_id": None,
    "input": {
        "latitude": 49.207,
        "longitude": 16.608,
        "similar_images": True,
        "images": ["https://plant.id/media/imgs/abc.jpg"],
        "datetime": "2026-10-19T10:00:00.000000+00:00",
    },
    "result": {
        "is_plant": {"probability": 0.98, "binary": True, "threshold": 0.5},
        "classification": {
            "suggestions": [
                {
                    "id": "a5c7f1a2",
                    "name": "Monstera Deliciosa",
                    "probability": 0.95,
                    "similar_images": [
                        {
                            "id": "img-1",
                            "url": "https://plant-id.ams3.cdn.digitaloceanspaces.com/similar_images/1.jpg",
                            "url_small": "https://plant-id.ams3.cdn.digitaloceanspaces.com/similar_images/1s.jpg",
                            "similarity": 0.81,
                            "license_name": "CC BY 4.0",
                            "citation": "Jane Doe",
                        }
                    ],
                    "details": {
                        "common_names": ["Swiss cheese plant", "Split-leaf philodendron"],
                        "description": {
                            "value": "Monstera deliciosa is a species of flowering plant native to tropical forests.",
                            "citation": "https://en.wikipedia.org/wiki/Monstera_deliciosa",
                            "license_name": "CC BY-SA 3.0",
                            "license_url": "https://creativecommons.org/licenses/by-sa/3.0/",
                        },
                        "url": "https://en.wikipedia.org/wiki/Monstera_deliciosa",
                        "best_light_condition": "Bright, indirect light",
                        "watering": {"min": 2, "max": 2},
                        "language": "en",
                        "entity_id": "a5c7f1a2",
                    },
                },
                {
                    "id": "b9e0d3c4",
                    "name": "Philodendron bipinnatifidum",
                    "probability": 0.03,
                    "similar_images": [],
                    "details": {"description": "A tropical philodendron."},
                },
                {
                    "id": "c1d2e3f4",
                    "name": "Epipremnum pinnatum",
                    "probability": 0.01,
                },
            ]
        },
    },
    "status": "COMPLETED",
    "sla_compliant_client": True,
    "sla_compliant_system": True,
    "created": 1760868000.0,
    "completed": 1760868001.5,
}

HEALTH_RESPONSE = {
    "access_token": "Ef56Gh78",
    "model_version": "plant_id:3.6.0",
    "result": {
        "is_plant": {"probability": 0.98, "binary": True, "threshold": 0.5},
        "is_healthy": {"probability": 0.12, "binary": False, "threshold": 0.525},
        "disease": {
            "suggestions": [
                {
                    "id": "d-1",
                    "name": "Fungi",
                    "probability": 0.71,
                    "details": {
                        "local_name": "Fungal infection",
                        "description": "Fungi take energy from the plants on which they live.",
                        "treatment": {
                            "chemical": ["Apply a copper-based fungicide."],
                            "biological": "Use Bacillus subtilis products.",
                            "prevention": ["Avoid overhead watering.", "Improve air circulation."],
                        },
                        "cause": None,
                        "classification": ["Fungi"],
                        "url": "https://en.wikipedia.org/wiki/Fungus",
                    },
                },
                {
                    "id": "d-2",
                    "name": "water excess or uneven watering",
                    "probability": 0.22,
                    "details": {"treatment": "Let the soil dry out between waterings."},
                },
            ]
        },
    },
    "status": "COMPLETED",
    "created": 1760868002.0,
    "completed": 1760868003.0,
}


@pytest.fixture
def identification_payload():
    return copy.deepcopy(MONSTERA_RESPONSE)


@pytest.fixture
def health_payload():
    return copy.deepcopy(HEALTH_RESPONSE)


@pytest.fixture
def make_image(tmp_path):
    def _make(name="plant.png", size=(1600, 1200), mode="RGB", fmt="PNG"):
        path = tmp_path / name
        color = (34, 139, 34, 255) if mode == "RGBA" else (34, 139, 34)
        Image.new(mode, size, color[:len(mode)]).save(path, format=fmt)
        return path
    return _make


@pytest.fixture
def image_file(make_image):
    return make_image()


@pytest.fixture
def make_response():
    """Stand-in for a requests.Response, streamed or not."""
    def _make(status_code=200, payload=None, text=None):
        response = Mock()
        response.status_code = status_code
        if isinstance(payload, Exception):
            response.text = text if text is not None else ""
            response.json.side_effect = payload
        else:
            response.text = text if text is not None else json.dumps(payload)
            response.json.return_value = payload
        body = response.text.encode("utf-8")
        response.iter_content.return_value = [body[:10], body[10:]]
        return response
    return _make


@pytest.fixture
async def db():
    from init_db import TORTOISE_ORM

    await Tortoise.init(config=TORTOISE_ORM)
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def api_client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def register_user(api_client):
    """Register + login through the API; returns (user_id, headers)."""
    def _register(email="gardener@example.com", password="secret-pass"):
        response = api_client.post("/api/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201
        response = api_client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200
        data = response.json()
        return data["userId"], {"Authorization": f"Bearer {data['accessToken']}"}
    return _register
