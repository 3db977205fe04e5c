"""
Unit tests for services.session_store module.
Tests TTL expiry and serialization of voice sessions for both stores.
"""
import pytest

from bizenglish.schemas.conversation import Turn
from bizenglish.services.session_store import (
    AudioChunk,
    ConversationSession,
    DatabaseSessionStore,
    InMemorySessionStore,
    build_session_store,
)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _session(session_id: str = "s1", **kwargs) -> ConversationSession:
    defaults = dict(
        session_id=session_id,
        user_id="u1",
        agent_id="agent_1",
        voice_id="voice_1",
        started_at=100.0,
        last_activity_at=100.0,
    )
    defaults.update(kwargs)
    return ConversationSession(**defaults)


class TestConversationSession:
    """Tests for the session dataclass."""

    def test_status_reflects_degraded_flag(self):
        assert _session().status == "active"
        assert _session(degraded=True).status == "degraded"

    def test_audio_bytes_sums_chunks(self):
        s = _session(audio_chunks=[AudioChunk(b"abc", "audio/webm", 1.0), AudioChunk(b"de", "audio/webm", 2.0)])
        assert s.audio_bytes == 5

    def test_owned_by(self):
        s = _session(user_id="owner")
        assert s.owned_by("owner") is True
        assert s.owned_by("someone-else") is False
        assert _session(user_id=None).owned_by("anyone") is True

    def test_dict_round_trip_keeps_audio_and_turns(self):
        s = _session(
            remote_conversation_id="conv_1",
            audio_chunks=[AudioChunk(b"\x00\xffbinary", "audio/ogg", 101.5)],
            partial_transcript=[Turn(role="user", content="Hi", timestamp="2024-01-01T00:00:00Z")],
        )
        restored = ConversationSession.from_dict(s.to_dict())
        assert restored == s


class TestInMemorySessionStore:
    """Tests for the process-local store."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self):
        store = InMemorySessionStore(ttl_sec=60)
        s = _session()
        await store.put(s)
        assert await store.get("s1") is s
        assert await store.delete("s1") is True
        assert await store.get("s1") is None
        assert await store.delete("s1") is False

    @pytest.mark.asyncio
    async def test_sessions_expire_after_ttl(self):
        clock = FakeClock(100.0)
        store = InMemorySessionStore(ttl_sec=60, clock=clock)
        await store.put(_session())
        clock.now = 159.0
        assert await store.get("s1") is not None
        clock.now = 160.0
        assert await store.get("s1") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_put_refreshes_ttl(self):
        clock = FakeClock(100.0)
        store = InMemorySessionStore(ttl_sec=60, clock=clock)
        s = _session()
        await store.put(s)
        clock.now = 150.0
        await store.put(s)
        clock.now = 200.0
        assert await store.get("s1") is s

    @pytest.mark.asyncio
    async def test_abandoned_sessions_are_swept_on_write(self):
        clock = FakeClock(100.0)
        store = InMemorySessionStore(ttl_sec=10, clock=clock)
        for i in range(100):
            await store.put(_session(f"old-{i}"))
        clock.now = 3700.0
        for i in range(5):
            await store.put(_session(f"new-{i}"))
        assert len(store) == 5
        assert await store.get("new-4") is not None

    @pytest.mark.asyncio
    async def test_purge_expired_keeps_live_sessions(self):
        clock = FakeClock(100.0)
        store = InMemorySessionStore(ttl_sec=10, clock=clock)
        await store.put(_session("stale"))
        clock.now = 105.0
        await store.put(_session("fresh"))
        clock.now = 111.0
        assert await store.purge_expired() == 1
        assert len(store) == 1
        assert await store.get("fresh") is not None


class TestDatabaseSessionStore:
    """Tests for the Tortoise-backed store."""

    @pytest.mark.asyncio
    async def test_round_trip_through_database(self, db):
        store = DatabaseSessionStore(ttl_sec=60)
        s = _session(audio_chunks=[AudioChunk(b"opus", "audio/webm", 101.0)])
        await store.put(s)
        loaded = await store.get("s1")
        assert loaded == s
        assert loaded is not s

    @pytest.mark.asyncio
    async def test_put_updates_existing_row(self, db):
        store = DatabaseSessionStore(ttl_sec=60)
        s = _session()
        await store.put(s)
        s.audio_chunks.append(AudioChunk(b"more", "audio/webm", 102.0))
        await store.put(s)
        loaded = await store.get("s1")
        assert [c.data for c in loaded.audio_chunks] == [b"more"]

    @pytest.mark.asyncio
    async def test_expired_rows_are_purged(self, db):
        clock = FakeClock(100.0)
        store = DatabaseSessionStore(ttl_sec=10, clock=clock)
        await store.put(_session())
        clock.now = 111.0
        assert await store.get("s1") is None
        assert await store.delete("s1") is False

    @pytest.mark.asyncio
    async def test_purge_expired_deletes_stale_rows(self, db):
        from bizenglish.models.voice_session import VoiceSession

        clock = FakeClock(100.0)
        store = DatabaseSessionStore(ttl_sec=10, clock=clock)
        await store.put(_session("stale"))
        clock.now = 105.0
        await store.put(_session("fresh"))
        clock.now = 111.0
        assert await store.purge_expired() == 1
        assert await VoiceSession.all().values_list("session_id", flat=True) == ["fresh"]

    @pytest.mark.asyncio
    async def test_delete(self, db):
        store = DatabaseSessionStore(ttl_sec=60)
        await store.put(_session())
        assert await store.delete("s1") is True
        assert await store.get("s1") is None


def test_build_session_store_follows_setting(monkeypatch):
    from bizenglish.config import settings

    monkeypatch.setattr(settings, "session_store", "database")
    assert isinstance(build_session_store(), DatabaseSessionStore)
    monkeypatch.setattr(settings, "session_store", "memory")
    assert isinstance(build_session_store(), InMemorySessionStore)
