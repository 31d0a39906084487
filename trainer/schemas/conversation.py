from pydantic import BaseModel, Field, field_validator
from typing import List, Literal
from datetime import datetime

from .strategy import PersonaStatus, PersonaSelection, StrategyChoice, SequenceAnalysis

class ConversationMessage(BaseModel):
    sender: Literal["user", "ai"]
    message: str
    timestamp: str
    emotion: str | None = None
    emotionReason: str | None = None

class ConversationCreate(BaseModel):
    scenarioId: str = Field(min_length=1)
    personaId: str | None = None          # 비우면 scenarioId와 같은 id의 페르소나
    scenarioName: str = Field(min_length=1)
    mode: Literal["text", "tts", "realtime_voice"] = "text"
    difficulty: int = Field(default=2, ge=1, le=4)

class MessageRequest(BaseModel):
    message: str   # 빈 문자열 = 턴 건너뛰기

    @field_validator("message")
    @classmethod
    def _limit_length(cls, v: str) -> str:
        if len(v) > 4000:
            raise ValueError("message too long")
        return v

class ConversationResponse(BaseModel):
    id: str
    scenarioId: str
    personaId: str | None = None
    scenarioName: str
    messages: List[ConversationMessage]
    turnCount: int
    status: str
    mode: str
    difficulty: int
    personaStatuses: List[PersonaStatus] = []
    personaSelections: List[PersonaSelection] = []
    strategyChoices: List[StrategyChoice] = []
    sequenceAnalysis: SequenceAnalysis | None = None
    strategyReflection: str | None = None
    conversationOrder: List[str] = []
    conversationType: str = "single"
    createdAt: datetime
    completedAt: datetime | None = None

    class Config:
        from_attributes = True  # ORM -> Pydantic

class MessageResponse(BaseModel):
    conversation: ConversationResponse
    aiResponse: str
    emotion: str | None = None
    emotionReason: str | None = None
    messages: List[ConversationMessage]
    isCompleted: bool

class ActionResult(BaseModel):
    success: bool = True
    conversation: ConversationResponse
