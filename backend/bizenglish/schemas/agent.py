"""
Pydantic schemas for the voice agent endpoint.
A single POST body with an `action` discriminator, mirroring the client's
start -> stream* -> end protocol plus on-demand tts.
"""
from pydantic import BaseModel
from typing import Optional, Literal, List
from .conversation import Turn

class AgentRequest(BaseModel):
    """
    Request model for POST /api/v1/agent.
    Which fields are required depends on the action:
      - start:  agentId (optional when DEFAULT_AGENT_ID is set), voiceId
      - stream: sessionId, audioData (base64), mimeType
      - end:    sessionId, conversationId (optional, persists the result),
                transcript (optional turns the client captured itself)
      - tts:    text, voiceId (optional, falls back to DEFAULT_VOICE_ID)
    """
    action: Literal["start", "stream", "end", "tts"]
    agentId: Optional[str] = None
    voiceId: Optional[str] = None
    sessionId: Optional[str] = None
    audioData: Optional[str] = None
    mimeType: Optional[str] = None
    conversationId: Optional[str] = None
    transcript: Optional[List[Turn]] = None
    text: Optional[str] = None

class TtsRequest(BaseModel):
    text: str
    voiceId: Optional[str] = None

class VideoAvatarRequest(BaseModel):
    """
    Request model for POST /api/v1/video-avatar.
      - list-calls:       no fields
      - get-call-details: callId
      - get-transcript:   callId, conversationId (optional, persists the result)
    """
    action: Literal["list-calls", "get-call-details", "get-transcript"]
    callId: Optional[str] = None
    conversationId: Optional[str] = None
