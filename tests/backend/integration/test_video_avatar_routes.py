from typing import List, Optional

import pytest

from bizenglish.api.v1.deps import get_video_avatar_client
from bizenglish.core.errors import ConfigurationError
from bizenglish.main import app
from bizenglish.schemas.conversation import Turn


pytestmark = pytest.mark.asyncio


CALL_TURNS = [
    Turn(role="assistant", content="Let's talk about your onboarding plan.", timestamp="2024-03-01T09:00:00Z"),
    Turn(role="user", content="I want feedback from every new hire.", timestamp="2024-03-01T09:01:00Z"),
]


class FakeAvatarClient:
    def __init__(self, turns: Optional[List[Turn]] = None, error: Optional[Exception] = None):
        self.turns = list(CALL_TURNS if turns is None else turns)
        self.error = error

    def _check(self):
        if self.error:
            raise self.error

    async def list_calls(self) -> list:
        self._check()
        return [{"id": "call_1", "status": "ended"}]

    async def get_call(self, call_id: str) -> dict:
        self._check()
        return {"id": call_id, "status": "ended"}

    async def get_call_messages(self, call_id: str) -> List[Turn]:
        self._check()
        return self.turns


def _install(fake: FakeAvatarClient) -> FakeAvatarClient:
    app.dependency_overrides[get_video_avatar_client] = lambda: fake
    return fake


async def test_list_calls_and_details(client, auth_headers):
    _install(FakeAvatarClient())
    calls = await client.post("/api/v1/video-avatar", headers=auth_headers, json={"action": "list-calls"})
    assert calls.json() == {"success": True, "calls": [{"id": "call_1", "status": "ended"}]}

    details = await client.post(
        "/api/v1/video-avatar", headers=auth_headers, json={"action": "get-call-details", "callId": "call_1"},
    )
    assert details.json()["callDetails"]["id"] == "call_1"


async def test_transcript_yields_study_material(client, auth_headers):
    _install(FakeAvatarClient())
    resp = await client.post(
        "/api/v1/video-avatar", headers=auth_headers, json={"action": "get-transcript", "callId": "call_1"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["callId"] == "call_1"
    assert [t["role"] for t in body["transcript"]] == ["assistant", "user"]
    assert [f["term"] for f in body["flashcards"]][:2] == ["onboarding", "feedback"]
    assert body["durationSec"] == 60
    assert body["analysis"].startswith("Conversation Summary:")


async def test_transcript_is_saved_to_conversation(client, auth_headers):
    _install(FakeAvatarClient())
    convo_id = (await client.post(
        "/api/v1/conversations", headers=auth_headers, json={"topic": "onboarding", "persona": "hr-manager"},
    )).json()["data"]["id"]
    resp = await client.post(
        "/api/v1/video-avatar", headers=auth_headers,
        json={"action": "get-transcript", "callId": "call_1", "conversationId": convo_id},
    )
    assert resp.json()["conversationId"] == convo_id

    detail = (await client.get(f"/api/v1/conversations/{convo_id}", headers=auth_headers)).json()["data"]
    assert len(detail["transcript"]) == 2
    assert detail["durationSec"] == 60
    assert detail["endedAt"] is not None


async def test_call_id_is_required(client, auth_headers):
    _install(FakeAvatarClient())
    resp = await client.post("/api/v1/video-avatar", headers=auth_headers, json={"action": "get-transcript"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"


async def test_missing_key_is_configuration_error(client, auth_headers):
    _install(FakeAvatarClient(error=ConfigurationError("BEYONDPRESENCE_API_KEY is not configured")))
    resp = await client.post("/api/v1/video-avatar", headers=auth_headers, json={"action": "list-calls"})
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "CONFIGURATION_ERROR"


async def test_unknown_conversation_is_404(client, auth_headers):
    _install(FakeAvatarClient())
    resp = await client.post(
        "/api/v1/video-avatar", headers=auth_headers,
        json={"action": "get-transcript", "callId": "call_1", "conversationId": "not-a-uuid"},
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "CONVERSATION_NOT_FOUND"


async def test_video_avatar_requires_auth(client):
    resp = await client.post("/api/v1/video-avatar", json={"action": "list-calls"})
    assert resp.status_code == 401
