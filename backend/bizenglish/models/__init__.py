"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: Learner account and authentication model
- Conversation: Durable practice conversation record
- VoiceSession: Voice session row used by the database session store
"""
from .user import User
from .conversation import Conversation
from .voice_session import VoiceSession
