from pydantic import BaseModel
from typing import List, Any
from datetime import datetime

class EvaluationScore(BaseModel):
    category: str
    name: str
    score: int        # 1~5
    feedback: str
    icon: str
    color: str

class FeedbackResponse(BaseModel):
    id: str
    conversationId: str
    overallScore: int
    scores: List[EvaluationScore]
    detailedFeedback: dict[str, Any]
    createdAt: datetime

    class Config:
        from_attributes = True
