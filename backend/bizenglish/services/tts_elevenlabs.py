import base64
import httpx
import logging
from typing import AsyncGenerator, Optional
from ..config import settings
from ..core.errors import ConfigurationError, InvalidRequestError, TTSUnavailableError

logger = logging.getLogger("uvicorn.error")

async def _stream_elevenlabs(
    text: str,
    voice_id: str,
    stability: float = 0.75,
    similarity_boost: float = 0.8,
    style: float = 0.2,
    use_speaker_boost: bool = True
) -> AsyncGenerator[bytes, None]:
    """
    Call ElevenLabs API for streaming TTS

    Parameters:
    - text: Text to synthesize
    - voice_id: ElevenLabs voice ID
    - stability: Stability (0-1), higher = more stable, lower = more expressive
    - similarity_boost: Similarity boost (0-1), similarity to original voice
    - style: Style exaggeration (0-1); kept low so pronunciation stays neutral
    - use_speaker_boost: Whether to enable speaker boost
    """
    url = f"{settings.eleven_api_base}/text-to-speech/{voice_id}/stream"
    headers = {
        "xi-api-key": settings.eleven_api_key,
        "accept": "audio/mpeg",
        "content-type": "application/json",
    }
    payload = {
        "text": text,
        "model_id": settings.eleven_tts_model,
        "output_format": "mp3_44100_64",
        "voice_settings": {
            "stability": stability,
            "similarity_boost": similarity_boost,
            "style": style,
            "use_speaker_boost": use_speaker_boost
        },
    }

    logger.info("[tts] HTTP POST %s voice=%s chars=%d", url, voice_id, len(text))
    async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as client:
        async with client.stream("POST", url, headers=headers, json=payload) as resp:
            resp.raise_for_status()
            async for chunk in resp.aiter_bytes():
                if chunk:
                    yield chunk

async def synthesize(text: str, voice_id: Optional[str] = None) -> bytes:
    """
    Synthesize `text` and return the MP3 bytes.

    Raises:
        InvalidRequestError: empty text
        ConfigurationError: ELEVENLABS_API_KEY missing
        TTSUnavailableError: provider failure or empty audio; the client should
            fall back to on-device speech synthesis
    """
    if not text or not text.strip():
        raise InvalidRequestError("Text cannot be empty")
    if not settings.eleven_api_key:
        raise ConfigurationError("ELEVENLABS_API_KEY is not configured")

    voice = voice_id or settings.default_voice_id
    audio_chunks = []
    try:
        async for chunk in _stream_elevenlabs(text=text.strip(), voice_id=voice):
            audio_chunks.append(chunk)
    except httpx.HTTPError as e:
        logger.warning("[tts] ElevenLabs synthesis failed voice=%s: %s", voice, e)
        raise TTSUnavailableError(f"TTS generation failed: {e}") from e

    audio_data = b"".join(audio_chunks)
    if not audio_data:
        raise TTSUnavailableError("TTS provider returned no audio")
    logger.info("[tts] Generation completed, size: %d bytes", len(audio_data))
    return audio_data

async def synthesize_data_url(text: str, voice_id: Optional[str] = None) -> str:
    """Same as synthesize() but encoded as a playable data URL."""
    audio = await synthesize(text, voice_id)
    return "data:audio/mpeg;base64," + base64.b64encode(audio).decode("ascii")
