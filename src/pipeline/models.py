# file: src/pipeline/models.py

# Pydantic models for reply segments and the /chat payloads.
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FacialExpression(str, Enum):
    SMILE = "smile"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    FUNNY_FACE = "funnyFace"
    DEFAULT = "default"


class Animation(str, Enum):
    TALKING_0 = "Talking_0"
    TALKING_1 = "Talking_1"
    TALKING_2 = "Talking_2"
    CRYING = "Crying"
    LAUGHING = "Laughing"
    RUMBA = "Rumba"
    IDLE = "Idle"
    TERRIFIED = "Terrified"
    ANGRY = "Angry"


class SegmentDraft(BaseModel):
    """One reply item as the language model produced it, before audio/lipsync."""
    text: str
    facialExpression: FacialExpression = FacialExpression.DEFAULT
    animation: Animation = Animation.IDLE


class ReplySegment(SegmentDraft):
    audio: str = ""  # base64 of the synthesized audio
    lipsync: Dict[str, Any] = Field(default_factory=dict)  # extractor JSON, untouched


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    messages: List[ReplySegment]


class VoiceChatResponse(ChatResponse):
    transcript: Optional[str] = None
