"""
Session-to-Storage Bridge

Writes the outcome of a finished conversation (voice or text) onto its
conversation record in a single update.
"""
import logging
import uuid
from typing import Optional
from tortoise import timezone
from tortoise.exceptions import BaseORMException
from ..core.errors import ConversationNotFoundError, InvalidRequestError, PersistenceError
from ..models.conversation import Conversation
from ..models.user import User
from .voice_sessions import SessionResult

logger = logging.getLogger("uvicorn.error")


async def get_conversation(conversation_id: str, user: Optional[User] = None) -> Conversation:
    """
    Load a conversation record, scoped to `user` when given.

    Raises:
        ConversationNotFoundError: no such record (or owned by someone else)
        PersistenceError: the ORM/database failed
    """
    try:
        filters = {"id": uuid.UUID(str(conversation_id))}
    except ValueError as e:
        raise ConversationNotFoundError(f"Conversation {conversation_id} not found") from e
    if user is not None:
        filters["user"] = user
    try:
        conversation = await Conversation.get_or_none(**filters)
    except BaseORMException as e:
        logger.exception("[finalize] lookup failed for conversation %s", conversation_id)
        raise PersistenceError(f"Failed to load conversation {conversation_id}: {e}") from e
    if conversation is None:
        raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
    return conversation


async def finalize(
    conversation_id: str,
    result: SessionResult,
    user: Optional[User] = None,
) -> Conversation:
    """
    Persist transcript, flashcards, analysis, duration and end time.

    Parameters:
    - conversation_id: Conversation record id
    - result: Outcome of the session (source is not stored)
    - user: When given, the record must belong to this user

    Raises:
        InvalidRequestError: empty transcript
        ConversationNotFoundError: no such record (or owned by someone else)
        PersistenceError: the ORM/database failed
    """
    if not result.transcript:
        raise InvalidRequestError("Cannot finalize a conversation without a transcript")

    conversation = await get_conversation(conversation_id, user)
    conversation.transcript = [t.model_dump() for t in result.transcript]
    conversation.flashcards = [c.model_dump() for c in result.flashcards]
    conversation.analysis = result.analysis
    conversation.duration_sec = result.duration_sec
    conversation.ended_at = timezone.now()
    try:
        await conversation.save(
            update_fields=["transcript", "flashcards", "analysis", "duration_sec", "ended_at"]
        )
    except BaseORMException as e:
        logger.exception("[finalize] failed to persist conversation %s", conversation_id)
        raise PersistenceError(f"Failed to save conversation {conversation_id}: {e}") from e

    logger.info("[finalize] conversation %s saved turns=%d cards=%d",
                conversation_id, len(result.transcript), len(result.flashcards))
    return conversation
