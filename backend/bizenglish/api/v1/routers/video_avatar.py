"""
Video Avatar HTTP API Router

Reads finished calls from the embedded video avatar provider and turns
them into study material, optionally saved onto a conversation record.
"""
import logging
from fastapi import APIRouter, Depends
from bizenglish.api.v1.deps import get_current_user, get_video_avatar_client
from bizenglish.api.v1.routers.agent import respond_with_result
from bizenglish.core.errors import InvalidRequestError
from bizenglish.models.user import User
from bizenglish.schemas.agent import VideoAvatarRequest
from bizenglish.services.finalize import get_conversation
from bizenglish.services.video_avatar import BeyondPresenceClient, study_material

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["video-avatar"])


@router.post("/video-avatar")
async def video_avatar(
    req: VideoAvatarRequest,
    user: User = Depends(get_current_user),
    client: BeyondPresenceClient = Depends(get_video_avatar_client),
):
    """
    - list-calls:       {} -> {success, calls}
    - get-call-details: {callId} -> {success, callDetails}
    - get-transcript:   {callId, conversationId?} -> {success, callId, transcript,
                        flashcards, analysis, durationSec, source, conversationId?}
    """
    if req.action == "list-calls":
        return {"success": True, "calls": await client.list_calls()}

    if not req.callId:
        raise InvalidRequestError("callId is required")

    if req.action == "get-call-details":
        return {"success": True, "callDetails": await client.get_call(req.callId)}

    if req.conversationId:
        await get_conversation(req.conversationId, user)
    result = await study_material(req.callId, client)
    logger.info("[avatar] call %s -> turns=%d cards=%d", req.callId, len(result.transcript), len(result.flashcards))
    return await respond_with_result(result, user, req.conversationId, callId=req.callId)
