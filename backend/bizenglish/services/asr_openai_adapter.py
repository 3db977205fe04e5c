"""
OpenAI Whisper API Adapter

Implements the ASR interface on top of the OpenAI transcription endpoint
"""
import httpx
import logging
from typing import Optional
from .asr_base import ASRService, TranscriptionResult, TranscriptSegment
from ..config import settings
from ..core.errors import ConfigurationError, ProviderUnavailableError

logger = logging.getLogger("uvicorn.error")

# MIME type -> file extension Whisper uses to sniff the container
_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


def _filename_for(mime_type: str) -> str:
    base = (mime_type or "").split(";", 1)[0].strip().lower()
    return f"audio.{_EXTENSIONS.get(base, 'webm')}"


class OpenAIWhisperService(ASRService):
    """OpenAI Whisper API Service"""

    @property
    def name(self) -> str:
        return "OpenAI Whisper API"

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(settings.openai_api_key)

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str = "audio/webm",
        language: Optional[str] = "en",
    ) -> TranscriptionResult:
        """
        Call OpenAI Whisper API for transcription
        
        Uses verbose_json format, returns segment-level timestamps
        """
        if not self.is_available():
            raise ConfigurationError(f"{self.name}: OPENAI_API_KEY not configured")

        headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
        data = {
            "model": settings.whisper_model,
            "response_format": "verbose_json",
            "temperature": 0.0,  # 0 = most deterministic
            # Business vocabulary hint to help Whisper with domain terms
            "prompt": "Hello, good morning. Let's discuss the quarterly review, the budget, the deadline, our KPIs and stakeholders.",
        }
        if language:
            data["language"] = language

        content_type = (mime_type or "audio/webm").split(";", 1)[0]
        files = {"file": (_filename_for(mime_type), audio, content_type)}
        try:
            async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as client:
                resp = await client.post(settings.whisper_api_url, headers=headers, data=data, files=files)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"{self.name} request failed: {e}") from e

        full_text = (result.get("text") or "").strip()
        duration = result.get("duration")

        segments = []
        raw_segments = result.get("segments") or []
        if not raw_segments and full_text:
            # If no segment information, create a single segment
            segments.append(TranscriptSegment(text=full_text, start_sec=0.0, end_sec=duration or 0.0))
        else:
            for seg in raw_segments:
                seg_text = (seg.get("text") or "").strip()
                if not seg_text:
                    continue
                segments.append(TranscriptSegment(
                    text=seg_text,
                    start_sec=seg.get("start", 0.0),
                    end_sec=seg.get("end", 0.0),
                ))

        logger.info("[asr] %s returned %d segments", self.name, len(segments))
        return TranscriptionResult(
            full_text=full_text,
            segments=segments,
            language=result.get("language"),
            duration_sec=duration,
        )


# Global singleton
openai_whisper_service = OpenAIWhisperService()
