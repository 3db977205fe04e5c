"""
ASR Service Abstract Interface

Unified interface for speech-to-text providers. Used to rebuild a
best-effort transcript from the audio buffered during a voice session when
the voice agent's own transcript cannot be retrieved.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass


@dataclass
class TranscriptSegment:
    """
    Transcription segment (sentence/segment level)
    
    Note: Timestamps here are relative time (from audio start), not Unix timestamps
    """
    text: str
    start_sec: float
    end_sec: float

    @property
    def start_ms(self) -> int:
        """Convert to milliseconds"""
        return int(self.start_sec * 1000)

    @property
    def end_ms(self) -> int:
        return int(self.end_sec * 1000)

    def __repr__(self):
        return f"TranscriptSegment(text='{self.text[:30]}...', start={self.start_sec:.2f}s, end={self.end_sec:.2f}s)"


@dataclass
class TranscriptionResult:
    """Complete transcription result"""
    full_text: str
    segments: List[TranscriptSegment]
    language: Optional[str] = None  # Detected language
    duration_sec: Optional[float] = None  # Total audio duration


class ASRService(ABC):
    """ASR Service Abstract Base Class"""

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        mime_type: str = "audio/webm",
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """
        Transcribe an in-memory audio recording
        
        Parameters:
        - audio: Encoded audio (e.g. concatenated MediaRecorder webm/opus slices)
        - mime_type: Container type of `audio`
        - language: Optional language hint (e.g., "en")
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if service is available"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name (e.g., "OpenAI Whisper API")"""
        pass
