"""
TTS HTTP API Router

Speaks a persona line with ElevenLabs. When this fails the client falls
back to on-device speech synthesis, so errors carry a distinct code
(TTS_UNAVAILABLE) rather than a generic 500.
"""
import io
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from bizenglish.api.v1.deps import get_current_user
from bizenglish.models.user import User
from bizenglish.schemas.agent import TtsRequest
from bizenglish.services.tts_elevenlabs import synthesize

logger = logging.getLogger("uvicorn.error")

router = APIRouter()


@router.post("/synthesize")
async def synthesize_tts(req: TtsRequest, user: User = Depends(get_current_user)):
    """
    Synthesize TTS audio

    Parameters:
    - text: Text to synthesize
    - voiceId: ElevenLabs voice (defaults to DEFAULT_VOICE_ID)

    Returns:
    - audio/mpeg audio stream
    """
    logger.info("[tts] Received request: voice=%s, text_len=%d", req.voiceId, len(req.text or ""))
    audio_data = await synthesize(req.text, req.voiceId)
    return StreamingResponse(
        io.BytesIO(audio_data),
        media_type="audio/mpeg",
        headers={
            "Content-Disposition": "inline; filename=tts.mp3",
            "Cache-Control": "no-cache",
        },
    )
