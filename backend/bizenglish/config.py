# bizenglish/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "BizEnglishAI API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    # ElevenLabs API Settings (voice agent + TTS)
    eleven_api_key: str | None = os.getenv("ELEVENLABS_API_KEY")
    eleven_api_base: str = os.getenv("ELEVENLABS_API_URL", "https://api.elevenlabs.io/v1")
    default_voice_id: str = os.getenv("DEFAULT_VOICE_ID", "9BWtsMINqrJLrRacOk9x")  # Aria
    default_agent_id: str | None = os.getenv("DEFAULT_AGENT_ID")
    eleven_tts_model: str = os.getenv("ELEVENLABS_TTS_MODEL", "eleven_turbo_v2_5")
    # Cheap "whoami" call before opening a remote conversation
    verify_provider_credential: bool = _flag("VERIFY_PROVIDER_CREDENTIAL", "true")
    # Forward streamed chunks to the agent's ingestion endpoint
    enable_audio_relay: bool = _flag("ENABLE_AUDIO_RELAY", "true")

    # BeyondPresence (video avatar calls)
    beyondpresence_api_key: str | None = os.getenv("BEYONDPRESENCE_API_KEY")
    beyondpresence_api_base: str = os.getenv("BEYONDPRESENCE_API_URL", "https://api.beyondpresence.com/v1")

    # OpenAI Settings (chat completion, flashcards, Whisper reconstruction)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_api_url: str = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
    gpt_model: str = os.getenv("GPT_MODEL", "gpt-4o-mini")
    whisper_api_url: str = os.getenv("WHISPER_API_URL", "https://api.openai.com/v1/audio/transcriptions")
    whisper_model: str = os.getenv("WHISPER_MODEL", "whisper-1")

    # Study material generation
    flashcard_strategy: str = os.getenv("FLASHCARD_STRATEGY", "keyword")  # keyword | provider
    enable_ai_analysis: bool = _flag("ENABLE_AI_ANALYSIS", "false")
    min_flashcards: int = int(os.getenv("MIN_FLASHCARDS", "3"))

    # Timeouts / retries for provider calls
    provider_timeout_sec: float = float(os.getenv("PROVIDER_TIMEOUT_SEC", "15"))
    transcript_retry_attempts: int = int(os.getenv("TRANSCRIPT_RETRY_ATTEMPTS", "3"))
    transcript_retry_delay_sec: float = float(os.getenv("TRANSCRIPT_RETRY_DELAY_SEC", "1.0"))
    end_timeout_sec: float = float(os.getenv("END_TIMEOUT_SEC", "25"))
    # Share of END_TIMEOUT_SEC the remote transcript fetch may use; the rest is left for local ASR
    remote_transcript_share: float = float(os.getenv("REMOTE_TRANSCRIPT_SHARE", "0.6"))

    # Voice session registry
    session_store: str = os.getenv("SESSION_STORE", "memory")  # memory | database
    session_ttl_sec: int = int(os.getenv("SESSION_TTL_SEC", "7200"))
    # 5s recorder timeslices -> 360 chunks is half an hour of audio
    max_audio_chunks: int = int(os.getenv("MAX_AUDIO_CHUNKS", "360"))
    max_audio_bytes: int = int(os.getenv("MAX_AUDIO_BYTES", str(50 * 1024 * 1024)))
    audio_overflow_policy: str = os.getenv("AUDIO_OVERFLOW_POLICY", "drop_oldest")  # drop_oldest | reject_new

settings = Settings()  # Instantiate configuration
