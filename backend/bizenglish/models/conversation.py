"""
Database model for conversations.
One row per practice conversation. Created when the learner starts a
conversation, then updated exactly once when it ends with the final
transcript, flashcards and analysis.
"""
import uuid
from tortoise import fields, models

class Conversation(models.Model):
    """
    Conversation database model.
    
    transcript and flashcards are JSON lists of Turn / FlashCard dicts
    (see bizenglish.schemas.conversation). A row with ended_at set always
    has a non-empty transcript.
    
    Relationships:
    - Belongs to a User (many-to-one)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField(
        "models.User", 
        related_name="conversations", 
        on_delete=fields.CASCADE
    )  # Cascade delete (if user is deleted, conversations are deleted)
    topic = fields.CharField(max_length=128)  # Topic id, e.g. "negotiation"
    persona = fields.CharField(max_length=64)  # AI persona id, e.g. "hr-manager"
    skill_level = fields.CharField(max_length=2, default="B1")  # CEFR level at creation time
    transcript = fields.JSONField(default=list)
    flashcards = fields.JSONField(default=list)
    analysis = fields.TextField(null=True)
    duration_sec = fields.IntField(null=True)  # Voice session length, when one was recorded
    created_at = fields.DatetimeField(auto_now_add=True)
    ended_at = fields.DatetimeField(null=True)  # Null while the conversation is ongoing

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "conversations"
