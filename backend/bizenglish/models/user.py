"""
Database model for users.
Represents a learner account: login credentials plus the CEFR skill level
used to pitch conversations and flashcards.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.
    
    Relationships:
    - Has many Conversations (one-to-many, via related_name="conversations")
    
    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Username must be unique across all users
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    username = fields.CharField(
        max_length=256, 
        unique=True, 
        index=True
    )  # User login name (must be unique, indexed for fast lookups)
    email = fields.CharField(max_length=256, null=True)  # User email address (optional)
    password_hash = fields.CharField(max_length=255)  # Argon2 hash, never plain text
    skill_level = fields.CharField(max_length=2, default="B1")  # CEFR level: A1 .. C2
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
