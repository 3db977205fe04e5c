"""
Voice Session Store

Registry of live voice sessions behind a small get/put/delete interface.

- InMemorySessionStore: process-local dict. Sessions vanish on restart and
  are not shared between workers; `end` treats a lost session as unknown.
- DatabaseSessionStore: one row per session in `voice_sessions`, so every
  worker pointed at the same database sees the same sessions.

Both expire sessions SESSION_TTL_SEC after their last write. Expired
sessions are removed on lookup and by purge_expired(), which the memory
store also runs on every write.
"""
import base64
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from ..config import settings
from ..models.voice_session import VoiceSession
from ..schemas.conversation import Turn

logger = logging.getLogger("uvicorn.error")


@dataclass
class AudioChunk:
    """One recorded audio slice as it arrived from the client"""
    data: bytes
    mime_type: str
    received_at: float  # epoch seconds

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ConversationSession:
    """
    One live voice conversation, from start to end.

    remote_conversation_id is None when the provider could not open a
    conversation; such a session is `degraded` and ends via local fallbacks.
    """
    session_id: str
    user_id: Optional[str]
    agent_id: str
    voice_id: str
    started_at: float
    last_activity_at: float
    remote_conversation_id: Optional[str] = None
    degraded: bool = False
    audio_chunks: List[AudioChunk] = field(default_factory=list)
    partial_transcript: List[Turn] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "degraded" if self.degraded else "active"

    @property
    def audio_bytes(self) -> int:
        return sum(c.size for c in self.audio_chunks)

    def owned_by(self, user_id: Optional[str]) -> bool:
        return self.user_id is None or user_id is None or self.user_id == user_id

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "agent_id": self.agent_id,
            "voice_id": self.voice_id,
            "started_at": self.started_at,
            "last_activity_at": self.last_activity_at,
            "remote_conversation_id": self.remote_conversation_id,
            "degraded": self.degraded,
            "audio_chunks": [
                {
                    "data": base64.b64encode(c.data).decode("ascii"),
                    "mime_type": c.mime_type,
                    "received_at": c.received_at,
                }
                for c in self.audio_chunks
            ],
            "partial_transcript": [t.model_dump() for t in self.partial_transcript],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationSession":
        return cls(
            session_id=data["session_id"],
            user_id=data.get("user_id"),
            agent_id=data["agent_id"],
            voice_id=data["voice_id"],
            started_at=data["started_at"],
            last_activity_at=data["last_activity_at"],
            remote_conversation_id=data.get("remote_conversation_id"),
            degraded=data.get("degraded", False),
            audio_chunks=[
                AudioChunk(
                    data=base64.b64decode(c["data"]),
                    mime_type=c["mime_type"],
                    received_at=c["received_at"],
                )
                for c in data.get("audio_chunks", [])
            ],
            partial_transcript=[Turn(**t) for t in data.get("partial_transcript", [])],
        )


class SessionStore(ABC):
    """Session Store Abstract Base Class"""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[ConversationSession]:
        """Return the session, or None if unknown or expired"""
        pass

    @abstractmethod
    async def put(self, session: ConversationSession) -> None:
        """Insert or replace the session and refresh its TTL"""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove the session; True if it existed"""
        pass

    @abstractmethod
    async def purge_expired(self) -> int:
        """Remove every expired session; return how many were removed"""
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store; the default for single-worker deployments"""

    def __init__(self, ttl_sec: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.ttl_sec = settings.session_ttl_sec if ttl_sec is None else ttl_sec
        self.clock = clock
        # session_id -> (session, expires_at)
        self._sessions: Dict[str, Tuple[ConversationSession, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, session_id: str) -> Optional[ConversationSession]:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        session, expires_at = entry
        if expires_at <= self.clock():
            logger.info("[session-store] session %s expired", session_id)
            self._sessions.pop(session_id, None)
            return None
        return session

    async def put(self, session: ConversationSession) -> None:
        # Abandoned sessions are never read again, so writes sweep them out
        self._purge()
        self._sessions[session.session_id] = (session, self.clock() + self.ttl_sec)

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def purge_expired(self) -> int:
        return self._purge()

    def _purge(self) -> int:
        now = self.clock()
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("[session-store] purged %d expired sessions", len(expired))
        return len(expired)


class DatabaseSessionStore(SessionStore):
    """Store backed by the voice_sessions table (Tortoise ORM)"""

    def __init__(self, ttl_sec: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.ttl_sec = settings.session_ttl_sec if ttl_sec is None else ttl_sec
        self.clock = clock

    async def get(self, session_id: str) -> Optional[ConversationSession]:
        row = await VoiceSession.get_or_none(session_id=session_id)
        if row is None:
            return None
        if row.is_expired(self.clock()):
            logger.info("[session-store] session %s expired", session_id)
            await row.delete()
            return None
        return ConversationSession.from_dict(row.payload)

    async def put(self, session: ConversationSession) -> None:
        await VoiceSession.update_or_create(
            session_id=session.session_id,
            defaults={
                "payload": session.to_dict(),
                "expires_at": self.clock() + self.ttl_sec,
            },
        )

    async def delete(self, session_id: str) -> bool:
        deleted = await VoiceSession.filter(session_id=session_id).delete()
        return deleted > 0

    async def purge_expired(self) -> int:
        purged = await VoiceSession.filter(expires_at__lte=self.clock()).delete()
        if purged:
            logger.info("[session-store] purged %d expired sessions", purged)
        return purged


def build_session_store() -> SessionStore:
    """Create the store selected by SESSION_STORE (memory | database)."""
    if settings.session_store == "database":
        logger.info("[session-store] using database-backed voice session store")
        return DatabaseSessionStore()
    return InMemorySessionStore()
