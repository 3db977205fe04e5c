"""
Unit tests for services.video_avatar module.
Tests request construction, message mapping and error mapping of the
BeyondPresence client.
"""
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from bizenglish.core.errors import AuthenticationError, ConfigurationError, ProviderUnavailableError
from bizenglish.services.video_avatar import BeyondPresenceClient, study_material


def _response(status_code=200, json_body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_body if json_body is not None else {}
    resp.text = str(json_body)
    return resp


def _mock_client(mock_client_class, response=None, side_effect=None):
    mock_get = AsyncMock(return_value=response, side_effect=side_effect)
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value.get = mock_get
    mock_client_class.return_value = mock_client
    return mock_get


MESSAGES = [
    {"speaker": "agent", "text": "Welcome to the quarterly review.", "timestamp": "2024-03-01T09:00:00Z"},
    {"speaker": "user", "content": "Our revenue is up ten percent.", "timestamp": "2024-03-01T09:00:40Z"},
    {"speaker": "user", "text": "   "},
]


@pytest.fixture
def avatar_settings():
    with patch("bizenglish.services.video_avatar.settings") as mock_settings:
        mock_settings.beyondpresence_api_key = "bp-test"
        mock_settings.beyondpresence_api_base = "https://api.beyondpresence.com/v1"
        mock_settings.provider_timeout_sec = 5
        yield mock_settings


class TestBeyondPresenceClient:
    """Tests for the video avatar HTTP client."""

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_network(self, avatar_settings):
        avatar_settings.beyondpresence_api_key = None
        with patch("httpx.AsyncClient") as mock_client_class:
            with pytest.raises(ConfigurationError):
                await BeyondPresenceClient().list_calls()
            mock_client_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_calls_uses_bearer_key(self, avatar_settings):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_get = _mock_client(mock_client_class, _response(200, [{"id": "call_1"}]))
            calls = await BeyondPresenceClient().list_calls()
        assert calls == [{"id": "call_1"}]
        assert mock_get.call_args[0][0] == "https://api.beyondpresence.com/v1/calls"
        assert mock_get.call_args[1]["headers"]["Authorization"] == "Bearer bp-test"

    @pytest.mark.asyncio
    async def test_get_call_returns_details(self, avatar_settings):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_get = _mock_client(mock_client_class, _response(200, {"id": "call_1", "status": "ended"}))
            details = await BeyondPresenceClient().get_call("call_1")
        assert details["status"] == "ended"
        assert mock_get.call_args[0][0].endswith("/calls/call_1")

    @pytest.mark.asyncio
    async def test_messages_map_agent_to_assistant(self, avatar_settings):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_get = _mock_client(mock_client_class, _response(200, MESSAGES))
            turns = await BeyondPresenceClient().get_call_messages("call_1")
        assert mock_get.call_args[0][0].endswith("/calls/call_1/messages")
        assert [(t.role, t.content) for t in turns] == [
            ("assistant", "Welcome to the quarterly review."),
            ("user", "Our revenue is up ten percent."),
        ]
        assert turns[0].timestamp == "2024-03-01T09:00:00Z"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_key_raises_authentication_error(self, avatar_settings, status):
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, _response(status, {"detail": "invalid"}))
            with pytest.raises(AuthenticationError):
                await BeyondPresenceClient().list_calls()

    @pytest.mark.asyncio
    async def test_server_error_is_provider_unavailable(self, avatar_settings):
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, _response(500, {"detail": "oops"}))
            with pytest.raises(ProviderUnavailableError):
                await BeyondPresenceClient().get_call("call_1")

    @pytest.mark.asyncio
    async def test_network_error_is_provider_unavailable(self, avatar_settings):
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_client(mock_client_class, side_effect=httpx.ConnectError("refused"))
            with pytest.raises(ProviderUnavailableError):
                await BeyondPresenceClient().get_call_messages("call_1")


@pytest.mark.asyncio
async def test_study_material_from_call(avatar_settings):
    with patch("httpx.AsyncClient") as mock_client_class:
        _mock_client(mock_client_class, _response(200, MESSAGES))
        result = await study_material("call_1", BeyondPresenceClient())
    assert result.source == "remote"
    assert result.duration_sec == 40
    terms = [c.term for c in result.flashcards]
    assert terms[:2] == ["quarterly review", "revenue"]
    assert result.analysis.startswith("Conversation Summary:")
