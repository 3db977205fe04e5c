"""
BeyondPresence Video Avatar Client

Read-only bridge to the video avatar provider that hosts embedded avatar
calls:
- list_calls: recent calls on the account
- get_call: one call's details
- get_call_messages: the call's messages as transcript turns

study_material() turns a finished call into the same result a voice
session produces (transcript, flashcards, analysis).
"""
import httpx
import logging
from typing import Any, List, Optional
from ..config import settings
from ..core.errors import AuthenticationError, ConfigurationError, ProviderUnavailableError
from ..schemas.conversation import Turn, iso_timestamp, parse_timestamp
from .analysis import analyze_conversation
from .flashcards import make_flashcards
from .voice_sessions import SOURCE_REMOTE, SessionResult

logger = logging.getLogger("uvicorn.error")


class BeyondPresenceClient:
    """HTTP client for the BeyondPresence calls API"""

    @property
    def api_key(self) -> Optional[str]:
        return settings.beyondpresence_api_key

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def _get(self, path: str) -> Any:
        if not self.is_available():
            raise ConfigurationError("BEYONDPRESENCE_API_KEY is not configured")

        url = f"{settings.beyondpresence_api_base}{path}"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as client:
                resp = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"BeyondPresence GET {path} failed: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthenticationError(f"BeyondPresence rejected the API key ({resp.status_code})")
        if resp.status_code >= 400:
            raise ProviderUnavailableError(
                f"BeyondPresence GET {path} returned {resp.status_code}: {resp.text[:200]}"
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderUnavailableError(f"Unreadable BeyondPresence response for {path}: {e}") from e

    async def list_calls(self) -> list:
        calls = await self._get("/calls")
        logger.info("[avatar] retrieved %d calls", len(calls) if isinstance(calls, list) else 0)
        return calls if isinstance(calls, list) else []

    async def get_call(self, call_id: str) -> dict:
        return await self._get(f"/calls/{call_id}")

    async def get_call_messages(self, call_id: str) -> List[Turn]:
        """Messages of a call as turns; the avatar (`agent`) speaks as assistant."""
        messages = await self._get(f"/calls/{call_id}/messages")
        turns = []
        for msg in messages if isinstance(messages, list) else []:
            text = (msg.get("text") or msg.get("content") or "").strip()
            if not text:
                continue
            turns.append(Turn(
                role="assistant" if msg.get("speaker") == "agent" else "user",
                content=text,
                timestamp=msg.get("timestamp") or iso_timestamp(),
            ))
        logger.info("[avatar] call %s has %d messages", call_id, len(turns))
        return turns


async def study_material(call_id: str, client: BeyondPresenceClient) -> SessionResult:
    """Transcript, flashcards and analysis for a finished avatar call."""
    transcript = await client.get_call_messages(call_id)
    flashcards = await make_flashcards(transcript)
    analysis = await analyze_conversation(transcript)
    moments = [m for m in (parse_timestamp(t.timestamp) for t in transcript) if m is not None]
    duration = int((max(moments) - min(moments)).total_seconds()) if len(moments) > 1 else None
    return SessionResult(
        transcript=transcript,
        flashcards=flashcards,
        analysis=analysis,
        duration_sec=duration,
        source=SOURCE_REMOTE,
    )


# Global singleton
beyondpresence = BeyondPresenceClient()
