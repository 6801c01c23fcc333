from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class Difficulty(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class TutorContext(BaseModel):
    topic: str | None = None
    difficulty: Difficulty = Difficulty.beginner
    learningStyle: str | None = None
    interests: list[str] = Field(default_factory=list)


class TutorRequest(BaseModel):
    messages: list[Message]
    context: TutorContext = Field(default_factory=TutorContext)

    @classmethod
    def initial(cls, messages: list[Message]) -> "TutorRequest":
        return cls(messages=messages, context=TutorContext(difficulty=Difficulty.beginner))


class TutorMetadata(BaseModel):
    processingTimeMs: int = Field(..., ge=0)
    # Placeholder value, not an estimate: 0.9 on success, 0 on failure.
    confidenceScore: float = Field(..., ge=0.0, le=1.0)
    suggestedNextSteps: list[str] = Field(default_factory=list, max_length=3)
    topic: str | None = None


class TutorResponse(BaseModel):
    success: bool
    responseText: str
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: TutorMetadata


class ChatRequest(BaseModel):
    messages: list[Message] = Field(..., min_length=1)
    topic: str | None = None


class UserPreferences(BaseModel):
    learningStyle: str | None = None
    difficultyPreference: str | None = None
    interests: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
