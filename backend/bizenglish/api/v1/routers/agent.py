"""
Voice Agent HTTP API Router

One endpoint, dispatched on `action`, drives a voice practice session:
start -> stream (many) -> end, plus tts for speaking a single line.
"""
import base64
import binascii
import logging
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from bizenglish.api.v1.deps import get_current_user, get_session_manager
from bizenglish.config import settings
from bizenglish.core.errors import BizEnglishError, InvalidRequestError
from bizenglish.models.user import User
from bizenglish.schemas.agent import AgentRequest
from bizenglish.services.finalize import finalize, get_conversation
from bizenglish.services.tts_elevenlabs import synthesize_data_url
from bizenglish.services.voice_sessions import DeliveryOutcome, SessionResult, StreamAck, VoiceSessionManager

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["agent"])


def _decode_audio(data: str | None) -> bytes | None:
    """Decode a base64 audio payload (plain or data URL); None if invalid."""
    if not data:
        return None
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None


async def respond_with_result(
    result: SessionResult,
    user: User,
    conversation_id: Optional[str] = None,
    **extra,
):
    """
    Success body for a finished conversation, persisted first when
    `conversation_id` is given. If persisting fails the error envelope
    still carries the result under "result" so the client can retry the
    save via /conversations/{id}/finalize.
    """
    body = {"success": True, **extra, **result.to_dict()}
    if not conversation_id:
        return body
    try:
        await finalize(conversation_id, result, user=user)
    except BizEnglishError as e:
        logger.warning("[agent] result not saved to conversation %s: %s", conversation_id, e.message)
        return JSONResponse(
            status_code=e.status_code,
            content={
                "success": False,
                "error": {"code": e.code, "message": e.message},
                "result": result.to_dict(),
            },
        )
    body["conversationId"] = conversation_id
    return body


@router.post("/agent")
async def agent(
    req: AgentRequest,
    user: User = Depends(get_current_user),
    manager: VoiceSessionManager = Depends(get_session_manager),
):
    """
    Voice session actions

    - start:  {agentId?, voiceId} -> {success, sessionId, status}
    - stream: {sessionId, audioData, mimeType} -> {success, outcome, chunkCount}
              (never an HTTP error; problems are reported in the ack)
    - end:    {sessionId, conversationId?, transcript?} -> {success, transcript,
              flashcards, analysis, durationSec, source, conversationId?}
    - tts:    {text, voiceId?} -> {success, audioUrl}
    """
    user_id = str(user.id)

    if req.action == "start":
        agent_id = req.agentId or settings.default_agent_id
        session = await manager.start(agent_id, req.voiceId, user_id=user_id)
        return {"success": True, "sessionId": session.session_id, "status": session.status}

    if req.action == "stream":
        audio = _decode_audio(req.audioData)
        if audio is None:
            logger.info("[agent] stream for %s carried no decodable audio", req.sessionId)
            return StreamAck(False, DeliveryOutcome.DROPPED, reason="invalid audio payload").to_dict()
        ack = await manager.stream(req.sessionId, audio, req.mimeType or "audio/webm", user_id=user_id)
        return ack.to_dict()

    if req.action == "end":
        # Check the record first: ending consumes the session
        if req.sessionId and req.conversationId:
            await get_conversation(req.conversationId, user)
        result = await manager.end(req.sessionId, user_id=user_id, client_turns=req.transcript or ())
        return await respond_with_result(result, user, req.conversationId)

    if req.action == "tts":
        if not req.text or not req.text.strip():
            raise InvalidRequestError("Text cannot be empty")
        audio_url = await synthesize_data_url(req.text, req.voiceId)
        return {"success": True, "audioUrl": audio_url}

    raise InvalidRequestError(f"Unknown action {req.action}")
