"""
Services Module

Provides interfaces for the external providers and the study-material logic:
- Voice agent (conversational AI): ElevenLabs
- Video avatar calls: BeyondPresence
- TTS (Text-to-Speech): ElevenLabs
- ASR (Automatic Speech Recognition): OpenAI Whisper API
- Text generation (persona chat, flashcards, coaching): OpenAI chat completions
"""

# ASR service
from .asr_base import (
    ASRService,
    TranscriptionResult,
    TranscriptSegment,
)
from .asr_openai_adapter import openai_whisper_service

# Voice agent + sessions
from .voice_agent import ElevenLabsAgentClient, elevenlabs_agent
from .session_store import (
    SessionStore,
    InMemorySessionStore,
    DatabaseSessionStore,
    build_session_store,
)
from .voice_sessions import (
    DeliveryOutcome,
    StreamAck,
    SessionResult,
    VoiceSessionManager,
    session_manager,
)

# TTS service
from .tts_elevenlabs import synthesize, synthesize_data_url

# Study material
from .analysis import analyze, analyze_conversation
from .flashcards import keyword_flashcards, make_flashcards, default_flashcards
from .flashcard_decoder import decode_flashcards
from .finalize import finalize, get_conversation

# Video avatar calls
from .video_avatar import BeyondPresenceClient, beyondpresence, study_material

__all__ = [
    # ASR
    "ASRService",
    "TranscriptionResult",
    "TranscriptSegment",
    "openai_whisper_service",
    # Voice agent + sessions
    "ElevenLabsAgentClient",
    "elevenlabs_agent",
    "SessionStore",
    "InMemorySessionStore",
    "DatabaseSessionStore",
    "build_session_store",
    "DeliveryOutcome",
    "StreamAck",
    "SessionResult",
    "VoiceSessionManager",
    "session_manager",
    # TTS
    "synthesize",
    "synthesize_data_url",
    # Study material
    "analyze",
    "analyze_conversation",
    "keyword_flashcards",
    "make_flashcards",
    "default_flashcards",
    "decode_flashcards",
    "finalize",
    "get_conversation",
    # Video avatar
    "BeyondPresenceClient",
    "beyondpresence",
    "study_material",
]
