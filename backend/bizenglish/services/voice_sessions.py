"""
Voice Session Manager

Lifecycle of one voice conversation: CREATED -> ACTIVE (zero or more
stream calls) -> ENDED. Cancelling and ending share the same path.

Failure policy:
- start: missing credential / rejected credential are fatal; a provider
  outage only marks the session degraded
- stream: never raises; the caller gets an ack with a delivery outcome
- end: never fails for lack of data; unknown sessions, provider outages and
  timeouts all produce a usable (possibly synthesized) result
"""
import asyncio
import logging
import secrets
import time
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence
from ..config import settings
from ..core.errors import (
    AuthenticationError,
    BizEnglishError,
    ConfigurationError,
    InternalError,
    InvalidRequestError,
    ProviderUnavailableError,
    SessionNotFoundError,
)
from ..schemas.conversation import FlashCard, Turn, iso_timestamp, parse_timestamp
from .analysis import analyze, analyze_conversation
from .asr_base import ASRService
from .asr_openai_adapter import openai_whisper_service
from .flashcards import default_flashcards, make_flashcards
from .session_store import AudioChunk, ConversationSession, SessionStore, build_session_store
from .voice_agent import ElevenLabsAgentClient, elevenlabs_agent

logger = logging.getLogger("uvicorn.error")

SOURCE_REMOTE = "remote"
SOURCE_LOCAL = "local"
SOURCE_FALLBACK = "fallback"


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"  # buffered and relayed to the provider
    BUFFERED = "buffered"    # buffered locally only
    DROPPED = "dropped"      # not stored


@dataclass
class StreamAck:
    success: bool
    outcome: DeliveryOutcome
    chunk_count: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"success": self.success, "outcome": self.outcome.value, "chunkCount": self.chunk_count}
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class SessionResult:
    transcript: List[Turn]
    flashcards: List[FlashCard]
    analysis: str
    duration_sec: Optional[int]
    source: str

    def to_dict(self) -> dict:
        return {
            "transcript": [t.model_dump() for t in self.transcript],
            "flashcards": [c.model_dump() for c in self.flashcards],
            "analysis": self.analysis,
            "durationSec": self.duration_sec,
            "source": self.source,
        }


def placeholder_transcript(started_at: Optional[float] = None) -> List[Turn]:
    """Synthesized business dialogue used when nothing was captured."""
    base = time.time() if started_at is None else started_at
    lines = [
        ("user", "Hello, I'd like to practise my business English today."),
        ("assistant", "Of course. Let's talk about your current project and the stakeholders involved."),
        ("user", "We have a quarterly review next week, so I need to prepare the key figures."),
        ("assistant", "Good idea. Make sure you can explain the return on each initiative clearly."),
    ]
    return [
        Turn(role=role, content=content, timestamp=iso_timestamp(base + i * 30))
        for i, (role, content) in enumerate(lines)
    ]


def _turn_sort_key(turn: Turn):
    # Unparseable timestamps go last, keeping their relative order
    moment = parse_timestamp(turn.timestamp)
    return (moment is None, moment.timestamp() if moment else 0.0)


class VoiceSessionManager:
    """
    Parameters:
    - store: where sessions live between requests
    - agent_client: voice agent provider bridge
    - asr: speech-to-text used to rebuild transcripts from buffered audio (optional)
    - clock: epoch-seconds time source
    """

    def __init__(
        self,
        store: SessionStore,
        agent_client: ElevenLabsAgentClient = elevenlabs_agent,
        asr: Optional[ASRService] = openai_whisper_service,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.agent_client = agent_client
        self.asr = asr
        self.clock = clock
        # An entry lives only while some request holds or awaits its lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def _new_session_id(self) -> str:
        while True:
            session_id = secrets.token_urlsafe(24)
            if await self.store.get(session_id) is None:
                return session_id

    # -------- start --------
    async def start(self, agent_id: str, voice_id: str, user_id: Optional[str] = None) -> ConversationSession:
        """
        Open a session.

        Raises:
            InvalidRequestError: agentId / voiceId missing
            ConfigurationError: no voice provider credential (before any network call)
            AuthenticationError: the provider rejected the credential
        """
        if not agent_id or not voice_id:
            raise InvalidRequestError("agentId and voiceId are required")
        if not self.agent_client.is_available():
            raise ConfigurationError("ELEVENLABS_API_KEY is not configured")

        await self.store.purge_expired()

        if settings.verify_provider_credential:
            try:
                await self.agent_client.verify_credential()
            except ProviderUnavailableError as e:
                logger.warning("[session] credential check skipped, provider unreachable: %s", e)

        remote_id = None
        try:
            remote_id = await self.agent_client.create_conversation(agent_id, voice_id)
        except ProviderUnavailableError as e:
            logger.warning("[session] remote conversation unavailable, starting degraded: %s", e)

        now = self.clock()
        session = ConversationSession(
            session_id=await self._new_session_id(),
            user_id=user_id,
            agent_id=agent_id,
            voice_id=voice_id,
            started_at=now,
            last_activity_at=now,
            remote_conversation_id=remote_id,
            degraded=remote_id is None,
        )
        await self.store.put(session)
        logger.info("[session] started %s agent=%s status=%s", session.session_id, agent_id, session.status)
        return session

    # -------- stream --------
    def _append_chunk(self, session: ConversationSession, chunk: AudioChunk) -> bool:
        """Buffer `chunk` within the configured caps; False if it was rejected."""
        max_chunks = settings.max_audio_chunks
        max_bytes = settings.max_audio_bytes
        if chunk.size > max_bytes:
            return False

        def overflowing() -> bool:
            return (len(session.audio_chunks) + 1 > max_chunks
                    or session.audio_bytes + chunk.size > max_bytes)

        if overflowing():
            if settings.audio_overflow_policy == "reject_new":
                return False
            while session.audio_chunks and overflowing():
                session.audio_chunks.pop(0)
        session.audio_chunks.append(chunk)
        return True

    async def _get_owned(self, session_id: str, user_id: Optional[str]) -> ConversationSession:
        session = await self.store.get(session_id)
        if session is None or not session.owned_by(user_id):
            raise SessionNotFoundError(f"Unknown session {session_id}")
        return session

    async def stream(
        self,
        session_id: str,
        audio: bytes,
        mime_type: str,
        user_id: Optional[str] = None,
    ) -> StreamAck:
        """Buffer one audio slice and relay it best-effort. Never raises."""
        if not session_id:
            return StreamAck(False, DeliveryOutcome.DROPPED, reason="missing session id")
        if not audio:
            return StreamAck(False, DeliveryOutcome.DROPPED, reason="empty audio")

        try:
            async with self._lock_for(session_id):
                session = await self._get_owned(session_id, user_id)
                last = session.audio_chunks[-1].received_at if session.audio_chunks else session.started_at
                now = max(self.clock(), last)
                if not self._append_chunk(session, AudioChunk(audio, mime_type or "audio/webm", now)):
                    logger.warning("[session] %s audio buffer full, chunk rejected", session_id)
                    return StreamAck(False, DeliveryOutcome.DROPPED, len(session.audio_chunks), "audio buffer full")
                session.last_activity_at = now
                await self.store.put(session)
                chunk_count = len(session.audio_chunks)
                remote_id = None if session.degraded else session.remote_conversation_id
        except SessionNotFoundError:
            logger.info("[session] stream for unknown session %s", session_id)
            return StreamAck(False, DeliveryOutcome.DROPPED, reason="session not found")
        except Exception:
            logger.exception("[session] stream failed session=%s bytes=%d", session_id, len(audio))
            return StreamAck(False, DeliveryOutcome.DROPPED, reason="internal error")

        if remote_id and settings.enable_audio_relay:
            try:
                await self.agent_client.send_audio(remote_id, audio, mime_type)
                return StreamAck(True, DeliveryOutcome.DELIVERED, chunk_count)
            except (ProviderUnavailableError, AuthenticationError, ConfigurationError) as e:
                logger.warning("[session] relay failed for %s, chunk kept locally: %s", session_id, e)
        return StreamAck(True, DeliveryOutcome.BUFFERED, chunk_count)

    # -------- end --------
    async def _take(self, session_id: str, user_id: Optional[str]) -> ConversationSession:
        async with self._lock_for(session_id):
            session = await self._get_owned(session_id, user_id)
            await self.store.delete(session_id)
        return session

    async def _fetch_remote_transcript(self, session: ConversationSession) -> Optional[List[Turn]]:
        attempts = max(1, settings.transcript_retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                turns = await self.agent_client.fetch_transcript(session.remote_conversation_id)
                if turns:
                    return turns
                logger.info("[session] remote transcript for %s not ready (attempt %d/%d)",
                            session.session_id, attempt, attempts)
            except (AuthenticationError, ConfigurationError) as e:
                logger.warning("[session] remote transcript unavailable for %s: %s", session.session_id, e)
                return None
            except ProviderUnavailableError as e:
                logger.warning("[session] remote transcript fetch failed for %s (attempt %d/%d): %s",
                               session.session_id, attempt, attempts, e)
            if attempt < attempts:
                await asyncio.sleep(settings.transcript_retry_delay_sec)
        return None

    async def _fetch_remote_within_budget(self, session: ConversationSession) -> Optional[List[Turn]]:
        """Remote retrieval may use only part of the end timeout; the rest is kept for local reconstruction."""
        budget = settings.end_timeout_sec * settings.remote_transcript_share
        try:
            return await asyncio.wait_for(self._fetch_remote_transcript(session), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning("[session] remote transcript for %s not retrieved within %.1fs",
                           session.session_id, budget)
            return None

    async def _reconstruct_local(self, session: ConversationSession) -> List[Turn]:
        turns = list(session.partial_transcript)
        if session.audio_chunks and self.asr is not None and self.asr.is_available():
            audio = b"".join(c.data for c in session.audio_chunks)
            try:
                result = await self.asr.transcribe(audio, mime_type=session.audio_chunks[0].mime_type)
                turns.extend(
                    Turn(role="user", content=seg.text, timestamp=iso_timestamp(session.started_at + seg.start_sec))
                    for seg in result.segments
                )
            except (ProviderUnavailableError, ConfigurationError) as e:
                logger.warning("[session] local transcription failed for %s: %s", session.session_id, e)
        if not turns:
            return placeholder_transcript(session.started_at)
        return sorted(turns, key=_turn_sort_key)

    async def _fallback_result(self, client_turns: Sequence[Turn] = ()) -> SessionResult:
        if client_turns:
            transcript = list(client_turns)
            flashcards = await make_flashcards(transcript)
        else:
            transcript = placeholder_transcript()
            flashcards = default_flashcards()
        return SessionResult(
            transcript=transcript,
            flashcards=flashcards,
            analysis=analyze(transcript),
            duration_sec=None,
            source=SOURCE_FALLBACK,
        )

    async def _end(
        self,
        session_id: str,
        user_id: Optional[str],
        client_turns: Sequence[Turn],
        taken: dict,
    ) -> SessionResult:
        try:
            session = await self._take(session_id, user_id)
        except SessionNotFoundError:
            logger.warning("[session] end for unknown session %s, returning fallback", session_id)
            return await self._fallback_result(client_turns)

        session.partial_transcript.extend(client_turns)
        taken["session"] = session
        transcript = None
        source = SOURCE_REMOTE
        if not session.degraded and session.remote_conversation_id:
            transcript = await self._fetch_remote_within_budget(session)
        if not transcript:
            source = SOURCE_LOCAL
            transcript = await self._reconstruct_local(session)

        duration = max(0, int(round(self.clock() - session.started_at)))
        flashcards = await make_flashcards(transcript)
        analysis = await analyze_conversation(transcript)
        logger.info("[session] ended %s source=%s turns=%d cards=%d duration=%ss",
                    session_id, source, len(transcript), len(flashcards), duration)
        return SessionResult(
            transcript=transcript,
            flashcards=flashcards,
            analysis=analysis,
            duration_sec=duration,
            source=source,
        )

    async def end(
        self,
        session_id: str,
        user_id: Optional[str] = None,
        client_turns: Sequence[Turn] = (),
    ) -> SessionResult:
        """
        Close a session and produce its study material.

        `client_turns` are turns the client captured itself (e.g. text chat
        messages); they join the local transcript and replace the
        placeholder when the session is unknown.

        Raises:
            InvalidRequestError: session id missing
            InternalError: unexpected failure (logged with context)
        """
        if not session_id:
            raise InvalidRequestError("sessionId is required")
        # The session is already gone from the store once _end has taken it
        taken: dict = {}
        try:
            return await asyncio.wait_for(
                self._end(session_id, user_id, client_turns, taken),
                timeout=settings.end_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning("[session] end timed out after %ss for %s, returning fallback",
                           settings.end_timeout_sec, session_id)
            session = taken.get("session")
            turns = sorted(session.partial_transcript, key=_turn_sort_key) if session else client_turns
            return await self._fallback_result(turns)
        except BizEnglishError:
            raise
        except Exception as e:
            logger.exception("[session] end failed session=%s user=%s", session_id, user_id)
            raise InternalError(f"Failed to end session {session_id}") from e


# Global singleton (swap via FastAPI dependency overrides in tests)
session_manager = VoiceSessionManager(build_session_store())
