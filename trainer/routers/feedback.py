# trainer/routers/feedback.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..ai.persona_ai import PersonaConversationAI
from ..db import get_db
from ..deps import get_conversation_cache, get_persona_ai
from ..schemas.feedback import FeedbackResponse
from ..services import feedback_service
from ..services.conversation_cache import ConversationCache
from ..services.conversation_service import get_conversation

router = APIRouter(prefix="/api", tags=["feedback"])


@router.post("/conversations/{conversation_id}/feedback", response_model=FeedbackResponse)
def create_feedback_api(
    conversation_id: str,
    db: Session = Depends(get_db),
    cache: ConversationCache = Depends(get_conversation_cache),
    ai: PersonaConversationAI = Depends(get_persona_ai),
):
    if not get_conversation(db, conversation_id):
        raise HTTPException(404, "Conversation not found")
    try:
        return feedback_service.generate_feedback(db, conversation_id, cache, ai)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except LookupError as e:
        raise HTTPException(404, str(e))


@router.get("/conversations/{conversation_id}/feedback", response_model=FeedbackResponse)
def get_feedback_api(conversation_id: str, db: Session = Depends(get_db)):
    if not get_conversation(db, conversation_id):
        raise HTTPException(404, "Conversation not found")
    fb = feedback_service.get_feedback(db, conversation_id)
    if not fb:
        raise HTTPException(404, "Feedback not found")
    return fb


@router.get("/feedbacks", response_model=List[FeedbackResponse])
def list_feedbacks_api(db: Session = Depends(get_db)):
    return [FeedbackResponse.model_validate(f, from_attributes=True) for f in feedback_service.list_feedbacks(db)]
