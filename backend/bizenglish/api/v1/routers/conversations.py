import datetime as dt
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from typing import Literal
from bizenglish.api.v1.deps import get_current_user
from bizenglish.models.user import User
from bizenglish.models.conversation import Conversation
from bizenglish.schemas.conversation import (
    ConversationCreateIn,
    ConversationDetail,
    ConversationItem,
    FinalizeIn,
    FlashCard,
    ReplyIn,
    Turn,
)
from bizenglish.services import chat
from bizenglish.services.analysis import analyze_conversation
from bizenglish.services.export import flashcards_to_anki, flashcards_to_csv
from bizenglish.services.finalize import finalize
from bizenglish.services.flashcards import make_flashcards
from bizenglish.services.voice_sessions import SessionResult

router = APIRouter(prefix="/conversations", tags=["conversations"])

def _iso(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat() + "Z"
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")

def _item(c: Conversation) -> ConversationItem:
    return ConversationItem(
        id=str(c.id),
        topic=c.topic,
        persona=c.persona,
        skillLevel=c.skill_level,
        createdAt=_iso(c.created_at),
        endedAt=_iso(c.ended_at),
        durationSec=c.duration_sec,
        flashcardCount=len(c.flashcards or []),
    )

async def _get_owned(cid: str, user: User) -> Conversation:
    c = await Conversation.get_or_none(id=cid, user=user)
    if not c:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="NOT_FOUND")
    return c

# ===== Routes =====
@router.get("", response_model=dict)
async def list_conversations(
    user: User = Depends(get_current_user),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
):
    """
    Get paginated list of conversations for the authenticated user.

    Newest first. Only returns conversations belonging to the authenticated
    user.

    Returns:
        dict: Response containing:
            - success: bool (always True)
            - data: dict with items, offset, limit, total
    """
    total = await Conversation.filter(user=user).count()
    rows = await Conversation.filter(user=user).order_by("-created_at").offset(offset).limit(limit)
    items = [_item(c).model_dump() for c in rows]
    return {"success": True, "data": {"items": items, "offset": offset, "limit": limit, "total": total}}

@router.post("", response_model=dict)
async def create_conversation(body: ConversationCreateIn, user: User = Depends(get_current_user)):
    """
    Start a conversation record for a topic and persona.

    The skill level defaults to the user's profile level. The response
    carries the persona's opening line so the client can show it (or speak
    it) before the learner's first turn.
    """
    c = await Conversation.create(
        user=user,
        topic=body.topic.strip(),
        persona=body.persona.strip(),
        skill_level=body.skillLevel or user.skill_level,
    )
    data = _item(c).model_dump()
    data["greeting"] = chat.initial_greeting(c.persona)
    return {"success": True, "data": data}

@router.get("/{cid}", response_model=dict)
async def get_conversation_detail(cid: str, user: User = Depends(get_current_user)):
    """
    Get a conversation with its transcript, flashcards and analysis.

    Raises:
        HTTPException (404): If conversation not found or doesn't belong to user
    """
    c = await _get_owned(cid, user)
    detail = ConversationDetail(
        **_item(c).model_dump(),
        transcript=[Turn(**t) for t in c.transcript or []],
        flashcards=[FlashCard(**f) for f in c.flashcards or []],
        analysis=c.analysis,
    )
    return {"success": True, "data": detail.model_dump()}

@router.delete("/{cid}", response_model=dict)
async def delete_conversation(cid: str, user: User = Depends(get_current_user)):
    """
    Delete a conversation permanently.

    Raises:
        HTTPException (404): If conversation not found or doesn't belong to user
    """
    c = await _get_owned(cid, user)
    await c.delete()
    return {"success": True, "data": {"id": cid, "deleted": True}}

@router.post("/{cid}/finalize", response_model=dict)
async def finalize_conversation(cid: str, body: FinalizeIn, user: User = Depends(get_current_user)):
    """
    Persist the outcome of a text-mode conversation.

    Flashcards and analysis are generated from the transcript when the
    client does not send them.

    Raises:
        InvalidRequestError (400): empty transcript
        ConversationNotFoundError (404): unknown conversation
        PersistenceError (503): database failure
    """
    flashcards = body.flashcards
    if not flashcards and body.transcript:
        flashcards = await make_flashcards(body.transcript)
    analysis = body.analysis
    if analysis is None and body.transcript:
        analysis = await analyze_conversation(body.transcript)
    result = SessionResult(
        transcript=body.transcript,
        flashcards=flashcards or [],
        analysis=analysis or "",
        duration_sec=body.durationSec,
        source="client",
    )
    c = await finalize(cid, result, user=user)
    return {"success": True, "data": {**_item(c).model_dump(), "flashcards": [f.model_dump() for f in result.flashcards], "analysis": c.analysis}}

@router.post("/{cid}/reply", response_model=dict)
async def reply(cid: str, body: ReplyIn, user: User = Depends(get_current_user)):
    """
    The persona's next message in a text-mode conversation.

    Raises:
        ConfigurationError (500): OPENAI_API_KEY not configured
        ProviderUnavailableError (502): chat completion failed
    """
    c = await _get_owned(cid, user)
    messages = [m.model_dump() for m in body.messages]
    if not messages:
        return {"success": True, "data": {"role": "assistant", "content": chat.initial_greeting(c.persona)}}
    content = await chat.reply(c, messages)
    return {"success": True, "data": {"role": "assistant", "content": content}}

@router.get("/{cid}/export")
async def export_flashcards(
    cid: str,
    format: Literal["csv", "anki"] = Query("csv"),
    user: User = Depends(get_current_user),
):
    """Download the conversation's flashcards as CSV or an Anki import file."""
    c = await _get_owned(cid, user)
    cards = [FlashCard(**f) for f in c.flashcards or []]
    if format == "anki":
        body, media_type, filename = flashcards_to_anki(cards), "text/tab-separated-values", "flashcards-anki.txt"
    else:
        body, media_type, filename = flashcards_to_csv(cards), "text/csv", "flashcards.csv"
    return PlainTextResponse(
        body,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
