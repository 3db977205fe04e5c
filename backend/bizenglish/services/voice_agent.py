"""
ElevenLabs Conversational Agent Client

Opaque bridge to the voice agent provider:
- verify_credential: cheap "whoami" call (GET /user)
- create_conversation: open a remote conversation for an agent
- send_audio: relay one recorded audio slice
- fetch_transcript: read the remote transcript once the call is processed

Every call is bounded by PROVIDER_TIMEOUT_SEC. Transport problems and
non-2xx answers become ProviderUnavailableError; 401/403 become
AuthenticationError.
"""
import httpx
import logging
from typing import List, Optional
from ..config import settings
from ..core.errors import AuthenticationError, ConfigurationError, ProviderUnavailableError
from ..schemas.conversation import Turn, iso_timestamp

logger = logging.getLogger("uvicorn.error")

# Remote statuses meaning the transcript is final
_DONE_STATUSES = {"done", "completed", "ended"}


class ElevenLabsAgentClient:
    """HTTP client for the ElevenLabs conversational AI API"""

    @property
    def api_key(self) -> Optional[str]:
        return settings.eleven_api_key

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.is_available():
            raise ConfigurationError("ELEVENLABS_API_KEY is not configured")

        url = f"{settings.eleven_api_base}{path}"
        headers = {"xi-api-key": self.api_key, **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as client:
                resp = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"ElevenLabs {method} {path} failed: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthenticationError(f"ElevenLabs rejected the API key ({resp.status_code})")
        if resp.status_code >= 400:
            raise ProviderUnavailableError(
                f"ElevenLabs {method} {path} returned {resp.status_code}: {resp.text[:200]}"
            )
        return resp

    async def verify_credential(self) -> dict:
        """Return the account the API key belongs to."""
        resp = await self._request("GET", "/user")
        return resp.json()

    async def create_conversation(self, agent_id: str, voice_id: str) -> str:
        """Open a remote conversation and return its id."""
        payload = {
            "agent_id": agent_id,
            "conversation_config_override": {"tts": {"voice_id": voice_id}},
        }
        resp = await self._request("POST", "/convai/conversations", json=payload)
        try:
            conversation_id = resp.json().get("conversation_id")
        except ValueError as e:
            raise ProviderUnavailableError(f"Unreadable conversation response: {e}") from e
        if not conversation_id:
            raise ProviderUnavailableError("ElevenLabs did not return a conversation_id")
        logger.info("[agent] remote conversation %s created for agent %s", conversation_id, agent_id)
        return conversation_id

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str) -> None:
        await self._request(
            "POST",
            f"/convai/conversations/{conversation_id}/audio",
            content=audio,
            headers={"content-type": mime_type or "application/octet-stream"},
        )

    async def fetch_transcript(self, conversation_id: str) -> Optional[List[Turn]]:
        """
        Read the remote transcript.

        Returns:
            The turns, or None while the provider is still processing the call
            (or has nothing recorded yet)

        Raises:
            ProviderUnavailableError: provider reports the conversation failed
        """
        resp = await self._request("GET", f"/convai/conversations/{conversation_id}")
        try:
            body = resp.json()
        except ValueError as e:
            raise ProviderUnavailableError(f"Unreadable transcript response: {e}") from e

        status = (body.get("status") or "").lower()
        if status == "failed":
            raise ProviderUnavailableError(f"Remote conversation {conversation_id} failed")
        if status and status not in _DONE_STATUSES:
            return None

        start = (body.get("metadata") or {}).get("start_time_unix_secs")
        turns = []
        for item in body.get("transcript") or []:
            text = (item.get("message") or item.get("text") or "").strip()
            if not text:
                continue
            offset = item.get("time_in_call_secs")
            if start is not None and offset is not None:
                timestamp = iso_timestamp(start + offset)
            else:
                timestamp = iso_timestamp()
            turns.append(Turn(
                role="assistant" if item.get("role") in ("agent", "assistant") else "user",
                content=text,
                timestamp=timestamp,
            ))
        return turns or None


# Global singleton
elevenlabs_agent = ElevenLabsAgentClient()
