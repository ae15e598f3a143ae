import base64
import json
import uuid

import pytest
from mongomock_motor import AsyncMongoMockClient

from services import notification_service
from services.puremind_db import use_database


@pytest.fixture
def db():
    database = AsyncMongoMockClient()[f"puremind_test_{uuid.uuid4().hex[:12]}"]
    use_database(database)
    yield database
    use_database(None)


@pytest.fixture(autouse=True)
async def clean_caches():
    await notification_service.reset_caches()
    yield
    await notification_service.reset_caches()


def make_token(sub: str, email: str = None) -> str:
    def part(data):
        raw = base64.urlsafe_b64encode(json.dumps(data).encode()).decode()
        return raw.rstrip("=")

    payload = {"sub": sub}
    if email:
        payload["email"] = email
    return f"{part({'alg': 'HS256', 'typ': 'JWT'})}.{part(payload)}.signature"


def auth(sub: str = "user-1", email: str = None):
    return {"Authorization": f"Bearer {make_token(sub, email)}"}
