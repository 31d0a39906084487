from pydantic import BaseModel, Field, field_validator
from typing import List, Literal

Mood = Literal["positive", "neutral", "negative", "unknown"]

# 전략 선택 화면에서 보여주는 페르소나 현재 상태
class PersonaStatus(BaseModel):
    personaId: str
    name: str
    currentMood: Mood = "neutral"
    approachability: float = Field(default=3, ge=1, le=5)   # 접근 용이성 1~5
    influence: float = Field(default=3, ge=1, le=5)         # 영향력 1~5
    hasBeenContacted: bool = False
    lastInteractionResult: Literal["success", "neutral", "failure"] | None = None
    availableInfo: List[str] = []
    keyRelationships: List[str] = []

# 사용자가 "다음에 누구와 대화할지" 고른 기록
class PersonaSelection(BaseModel):
    phase: int = Field(ge=1)
    personaId: str = Field(min_length=1)
    selectionReason: str = ""
    timestamp: str | None = None
    expectedOutcome: str = ""

class StrategyChoice(BaseModel):
    phase: int = Field(ge=1)
    choice: str = Field(min_length=1)
    reasoning: str = ""
    timestamp: str | None = None

class SequenceAnalysis(BaseModel):
    selectionOrder: List[int]
    optimalOrder: List[int]
    orderScore: int = Field(ge=1, le=5)
    reasoningQuality: int = Field(ge=1, le=5)
    strategicThinking: int = Field(ge=1, le=5)
    adaptability: int = Field(ge=1, le=5)
    overallEffectiveness: int = Field(ge=1, le=5)
    detailedAnalysis: str
    improvements: List[str]
    strengths: List[str]

# ---------- 요청 Body ----------
class SequencePlanRequest(BaseModel):
    sequencePlan: List[PersonaSelection]
    conversationType: str = "sequential"

class SequenceAnalysisRequest(BaseModel):
    # 비우면 대화에 저장된 상태를 사용
    personaStatuses: List[PersonaStatus] | None = None

class StrategyReflectionRequest(BaseModel):
    strategyReflection: str = Field(min_length=1)
    conversationOrder: List[str]

    @field_validator("conversationOrder")
    @classmethod
    def _non_empty_ids(cls, v: List[str]) -> List[str]:
        if any(not pid.strip() for pid in v):
            raise ValueError("All conversation order IDs must be non-empty strings")
        return v
