import json

import httpx
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from wyzar_messaging.config import Settings
from wyzar_messaging.database.connection import ensure_indexes, use_database
from wyzar_messaging.main import create_app
from wyzar_messaging.repositories.conversation_repository import ConversationRepository
from wyzar_messaging.repositories.message_repository import MessageRepository
from wyzar_messaging.repositories.product_repository import ProductRepository
from wyzar_messaging.repositories.user_repository import UserRepository
from wyzar_messaging.services.chat_service import ChatService
from wyzar_messaging.utils.security import create_access_token


JWT_SECRET = "wyzar-test-secret-0123456789abcdef0123456789"


class FakeSocket:
    """Stands in for a connected client; records decoded events."""

    def __init__(self) -> None:
        self.events = []

    async def send_text(self, text: str) -> None:
        self.events.append(json.loads(text))

    def named(self, event: str):
        return [e["data"] for e in self.events if e["event"] == event]


class BrokenSocket:

    async def send_text(self, text: str) -> None:
        raise RuntimeError("socket closed")


@pytest.fixture
def settings():
    return Settings(
        mongodb_url="mongodb://unused",
        mongodb_db="wyzar_test",
        redis_url=None,
        jwt_secret=JWT_SECRET,
        jwt_algorithm="HS256",
        message_max_length=2000,
        message_max_attachments=5,
        typing_timeout_seconds=0.05,
        log_level="DEBUG",
    )


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["wyzar_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def make_user(db):
    async def _make_user(email: str, **extra) -> str:
        doc = {"email": email, "seller_details": None, "blocked_users": []}
        doc.update(extra)
        result = await db.users.insert_one(doc)
        return str(result.inserted_id)

    return _make_user


@pytest.fixture
async def alice(make_user):
    return await make_user("alice@example.co.zw")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob@example.co.zw", seller_details={"business_name": "Bob's Electronics"})


@pytest.fixture
async def product(db):
    result = await db.products.insert_one({"name": "Solar Panel 200W", "images": ["https://ik.imagekit.io/wyzar/p1.jpg"], "price": 120.0})
    return str(result.inserted_id)


@pytest.fixture
def chat_service(db, settings):
    return ChatService(
        MessageRepository(db),
        ConversationRepository(db),
        UserRepository(db),
        ProductRepository(db),
        settings,
    )


@pytest.fixture
def app(db, settings):
    use_database(db)
    return create_app(settings, database=db)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


@pytest.fixture
def auth():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id, JWT_SECRET)}"}

    return _headers


@pytest.fixture
def missing_id():
    return str(ObjectId())
