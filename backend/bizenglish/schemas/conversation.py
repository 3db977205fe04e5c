"""
Pydantic schemas for conversations and study material.
Turn and FlashCard are also the in-process types the services pass around;
the conversation record stores them as plain JSON dicts.
"""
import datetime as dt
from pydantic import BaseModel, Field
from typing import Optional, List, Literal

CEFR_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")
CefrLevel = Literal["A1", "A2", "B1", "B2", "C1", "C2"]

def iso_timestamp(epoch: Optional[float] = None) -> str:
    """UTC ISO-8601 with a Z suffix, for `epoch` seconds or now."""
    moment = dt.datetime.now(dt.timezone.utc) if epoch is None else dt.datetime.fromtimestamp(epoch, dt.timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")

def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    """Parse an ISO-8601 timestamp (Z suffix allowed) as an aware UTC datetime; None if unreadable."""
    if not value:
        return None
    try:
        moment = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    return moment

class Turn(BaseModel):
    """One utterance in a transcript."""
    role: Literal["user", "assistant"]
    content: str
    timestamp: str = Field(default_factory=iso_timestamp)  # ISO-8601

class FlashCard(BaseModel):
    """A vocabulary study unit derived from a transcript."""
    term: str
    definition: str
    example_sentence: str = ""
    translation: str = ""  # German translation in the default vocabulary
    common_mistake: str = ""
    correction: str = ""
    proficiencyLevel: CefrLevel = "B1"
    topicTag: str = "business_general"

class ConversationCreateIn(BaseModel):
    """Request model for starting a new conversation record."""
    topic: str
    persona: str
    skillLevel: Optional[CefrLevel] = None  # Defaults to the user's profile level

class ConversationItem(BaseModel):
    """Conversation item for the dashboard list."""
    id: str
    topic: str
    persona: str
    skillLevel: str
    createdAt: str
    endedAt: Optional[str] = None
    durationSec: Optional[int] = None
    flashcardCount: int = 0

class ConversationDetail(ConversationItem):
    """Full conversation record, as read by the study view."""
    transcript: List[Turn] = []
    flashcards: List[FlashCard] = []
    analysis: Optional[str] = None

class FinalizeIn(BaseModel):
    """Study material to persist when the client ends a text-only conversation."""
    transcript: List[Turn]
    flashcards: Optional[List[FlashCard]] = None
    analysis: Optional[str] = None
    durationSec: Optional[int] = None

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class ReplyIn(BaseModel):
    """Messages so far in a text-mode conversation; the persona answers the last one."""
    messages: List[ChatMessage] = Field(default_factory=list)
