import os
import uuid
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from bizenglish.core import db as db_module
from bizenglish.core.errors import ProviderUnavailableError
from bizenglish.core.security import hash_password
from bizenglish.main import app
from bizenglish.models.user import User
from bizenglish.schemas.conversation import Turn


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database for service-level tests that do not need the HTTP app."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client():
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    await _init_test_db()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def create_user():
    """
    Factory fixture to create learners directly.
    """

    async def _create_user(password: str = "UserPass!23", skill_level: str = "B1") -> tuple[User, str]:
        user = await User.create(
            username=f"user_{uuid.uuid4().hex[:6]}",
            email=f"{uuid.uuid4().hex[:6]}@example.com",
            password_hash=hash_password(password),
            skill_level=skill_level,
        )
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(username: str, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest_asyncio.fixture
async def auth_headers(create_user, auth_header_factory):
    """Authorization headers for a freshly created learner."""
    user, password = await create_user()
    return await auth_header_factory(user.username, password)


class FakeAgentClient:
    """
    In-process stand-in for ElevenLabsAgentClient.

    - available: whether an API key is "configured"
    - create_error: raised by create_conversation (e.g. ProviderUnavailableError)
    - transcripts: successive fetch_transcript answers (None = still processing)
    """

    def __init__(
        self,
        available: bool = True,
        create_error: Optional[Exception] = None,
        verify_error: Optional[Exception] = None,
        relay_error: Optional[Exception] = None,
        transcripts: Optional[List[Optional[List[Turn]]]] = None,
    ):
        self.available = available
        self.create_error = create_error
        self.verify_error = verify_error
        self.relay_error = relay_error
        self.transcripts = list(transcripts or [])
        self.calls: List[str] = []
        self.relayed: List[bytes] = []

    def is_available(self) -> bool:
        return self.available

    async def verify_credential(self) -> dict:
        self.calls.append("verify")
        if self.verify_error:
            raise self.verify_error
        return {"subscription": {"tier": "free"}}

    async def create_conversation(self, agent_id: str, voice_id: str) -> str:
        self.calls.append("create")
        if self.create_error:
            raise self.create_error
        return f"conv_{uuid.uuid4().hex[:8]}"

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str) -> None:
        self.calls.append("send_audio")
        if self.relay_error:
            raise self.relay_error
        self.relayed.append(audio)

    async def fetch_transcript(self, conversation_id: str) -> Optional[List[Turn]]:
        self.calls.append("fetch")
        if not self.transcripts:
            raise ProviderUnavailableError("no transcript scripted")
        return self.transcripts.pop(0)


@pytest.fixture
def fake_agent():
    return FakeAgentClient()


@pytest.fixture
def fast_retries(monkeypatch):
    """No waiting between transcript retries."""
    from bizenglish.config import settings

    monkeypatch.setattr(settings, "transcript_retry_delay_sec", 0.0)
    monkeypatch.setattr(settings, "transcript_retry_attempts", 3)
    return settings


@pytest.fixture
def fake_agent_cls():
    """The FakeAgentClient class, for tests that script provider behaviour."""
    return FakeAgentClient
