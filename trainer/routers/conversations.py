# trainer/routers/conversations.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..ai.persona_ai import PersonaConversationAI
from ..db import get_db
from ..deps import get_conversation_cache, get_persona_ai
from ..schemas.conversation import (
    ActionResult,
    ConversationCreate,
    ConversationResponse,
    MessageRequest,
    MessageResponse,
)
from ..schemas.strategy import (
    PersonaSelection,
    SequenceAnalysis,
    SequenceAnalysisRequest,
    SequencePlanRequest,
    StrategyChoice,
    StrategyReflectionRequest,
)
from ..services import conversation_service as svc
from ..services.conversation_cache import ConversationCache

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def _load(db: Session, conversation_id: str):
    row = svc.get_conversation(db, conversation_id)
    if not row:
        raise HTTPException(404, "Conversation not found")
    return row


def _result(row) -> ActionResult:
    return ActionResult(conversation=ConversationResponse.model_validate(row, from_attributes=True))


# ---------------------------
# 📌 Conversation CRUD
# ---------------------------
@router.post("", response_model=ConversationResponse)
def create_conversation_api(
    body: ConversationCreate,
    db: Session = Depends(get_db),
    cache: ConversationCache = Depends(get_conversation_cache),
    ai: PersonaConversationAI = Depends(get_persona_ai),
):
    try:
        return svc.create_conversation(db, body, cache, ai)
    except LookupError as e:
        raise HTTPException(400, f"Invalid conversation data: {e}")


@router.get("", response_model=List[ConversationResponse])
def list_conversations_api(
    db: Session = Depends(get_db),
    scenarioId: str | None = None,
    status: str | None = None,
):
    items = svc.list_conversations(db, scenario_id=scenarioId, status=status)
    return [ConversationResponse.model_validate(it, from_attributes=True) for it in items]


@router.get("/{conversation_id}", response_model=ConversationResponse)
def get_conversation_api(conversation_id: str, db: Session = Depends(get_db)):
    return _load(db, conversation_id)


@router.delete("/{conversation_id}")
def delete_conversation_api(conversation_id: str, db: Session = Depends(get_db)):
    if not svc.delete_conversation(db, conversation_id):
        raise HTTPException(404, "Conversation not found")
    return {"success": True}


# ---------------------------
# 📌 메시지
# ---------------------------
@router.post("/{conversation_id}/messages", response_model=MessageResponse)
def send_message_api(
    conversation_id: str,
    body: MessageRequest,
    db: Session = Depends(get_db),
    cache: ConversationCache = Depends(get_conversation_cache),
    ai: PersonaConversationAI = Depends(get_persona_ai),
):
    _load(db, conversation_id)
    try:
        row, result = svc.add_message(db, conversation_id, body.message, cache, ai)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except LookupError as e:
        raise HTTPException(404, str(e))

    conversation = ConversationResponse.model_validate(row, from_attributes=True)
    return MessageResponse(
        conversation=conversation,
        aiResponse=result["content"],
        emotion=result.get("emotion"),
        emotionReason=result.get("emotionReason"),
        messages=conversation.messages,
        isCompleted=row.status == "completed",
    )


# ---------------------------
# 📌 전략 대화
# ---------------------------
@router.post("/{conversation_id}/persona-selections", response_model=ActionResult)
def add_persona_selection_api(conversation_id: str, body: PersonaSelection, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    return _result(svc.add_persona_selection(db, conversation_id, body))


@router.get("/{conversation_id}/persona-selections", response_model=List[PersonaSelection])
def get_persona_selections_api(conversation_id: str, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    return svc.get_persona_selections(db, conversation_id)


@router.post("/{conversation_id}/sequence-plan", response_model=ActionResult)
def save_sequence_plan_api(conversation_id: str, body: SequencePlanRequest, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    return _result(svc.save_sequence_plan(db, conversation_id, body))


@router.post("/{conversation_id}/strategy-choices", response_model=ActionResult)
def add_strategy_choice_api(conversation_id: str, body: StrategyChoice, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    return _result(svc.add_strategy_choice(db, conversation_id, body))


@router.get("/{conversation_id}/strategy-choices", response_model=List[StrategyChoice])
def get_strategy_choices_api(conversation_id: str, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    return svc.get_strategy_choices(db, conversation_id)


@router.post("/{conversation_id}/sequence-analysis", response_model=SequenceAnalysis)
def analyze_sequence_api(
    conversation_id: str,
    body: SequenceAnalysisRequest | None = None,
    db: Session = Depends(get_db),
    cache: ConversationCache = Depends(get_conversation_cache),
):
    _load(db, conversation_id)
    statuses = body.personaStatuses if body else None
    return svc.analyze_sequence(db, conversation_id, cache, statuses)


@router.get("/{conversation_id}/sequence-analysis", response_model=SequenceAnalysis)
def get_sequence_analysis_api(conversation_id: str, db: Session = Depends(get_db)):
    _load(db, conversation_id)
    analysis = svc.get_sequence_analysis(db, conversation_id)
    if not analysis:
        raise HTTPException(404, "Sequence analysis not found")
    return analysis


@router.post("/{conversation_id}/strategy-reflection", response_model=ActionResult)
def save_strategy_reflection_api(
    conversation_id: str, body: StrategyReflectionRequest, db: Session = Depends(get_db)
):
    _load(db, conversation_id)
    return _result(
        svc.save_strategy_reflection(db, conversation_id, body.strategyReflection, body.conversationOrder)
    )
