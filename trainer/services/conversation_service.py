# trainer/services/conversation_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..ai.persona_ai import PersonaConversationAI
from ..ai.sequence_analyzer import SequenceLogicAnalyzer
from ..ai.situation_manager import DynamicSituationManager
from ..config import settings
from ..models.conversation import Conversation
from ..schemas.conversation import ConversationCreate
from ..schemas.strategy import (
    PersonaSelection,
    PersonaStatus,
    SequenceAnalysis,
    SequencePlanRequest,
    StrategyChoice,
)
from .conversation_cache import ConversationCache

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def scenario_context(scenario: Dict[str, Any]) -> Dict[str, Any]:
    """분석기/상황 관리자가 쓰는 최소 컨텍스트"""
    return {
        "title": scenario.get("title"),
        "situation": (scenario.get("context") or {}).get("situation") or "",
        "personas": scenario.get("personas") or [],
    }


def _ai_message(result: Dict[str, str]) -> Dict[str, Any]:
    return {
        "sender": "ai",
        "message": result["content"],
        "timestamp": _now_iso(),
        "emotion": result.get("emotion"),
        "emotionReason": result.get("emotionReason"),
    }


# ---------------------------
# 📌 Conversation CRUD
# ---------------------------
def create_conversation(
    db: Session,
    body: ConversationCreate,
    cache: ConversationCache,
    ai: PersonaConversationAI,
) -> Conversation:
    persona_id = body.personaId or body.scenarioId
    data = cache.get_conversation_data(body.scenarioId, persona_id)  # 없으면 LookupError
    scenario = data["scenario"]

    row = Conversation(
        scenarioId=body.scenarioId,
        personaId=persona_id,
        scenarioName=body.scenarioName,
        messages=[],
        turnCount=0,
        status="active",
        mode=body.mode,
        difficulty=body.difficulty,
        personaStatuses=[
            s.model_dump() for s in DynamicSituationManager.generate_initial_persona_statuses(
                scenario.get("personas") or [], scenario_context(scenario)
            )
        ],
    )

    # 실시간 음성은 첫 인사를 음성 채널에서 받음
    if body.mode != "realtime_voice":
        try:
            result = ai.generate_response({**scenario, "difficulty": body.difficulty}, [], data["persona"])
            row.messages = [_ai_message(result)]
        except Exception as e:
            # 첫 메시지 생성이 실패해도 대화는 만든다
            log.exception("[CONV] 첫 AI 메시지 생성 실패: %s", e)

    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("[CONV] 생성 id=%s scenario=%s persona=%s mode=%s", row.id, row.scenarioId, persona_id, row.mode)
    return row


def get_conversation(db: Session, conversation_id: str) -> Conversation | None:
    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


def require_conversation(db: Session, conversation_id: str) -> Conversation:
    row = get_conversation(db, conversation_id)
    if row is None:
        raise LookupError(f"Conversation not found: {conversation_id}")
    return row


def list_conversations(db: Session, scenario_id: str | None = None, status: str | None = None) -> List[Conversation]:
    query = db.query(Conversation)
    if scenario_id:
        query = query.filter(Conversation.scenarioId == scenario_id)
    if status:
        query = query.filter(Conversation.status == status)
    return query.order_by(Conversation.createdAt.desc()).all()


def delete_conversation(db: Session, conversation_id: str) -> bool:
    row = get_conversation(db, conversation_id)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


# ---------------------------
# 📌 메시지 (한 턴)
# ---------------------------
def add_message(
    db: Session,
    conversation_id: str,
    text: str,
    cache: ConversationCache,
    ai: PersonaConversationAI,
    max_turns: Optional[int] = None,
) -> Tuple[Conversation, Dict[str, str]]:
    """
    사용자 발언 저장 + 페르소나 응답 생성.
    빈 문자열은 턴 건너뛰기. 이미 완료된 대화면 ValueError.
    """
    max_turns = max_turns or settings.max_turns
    row = require_conversation(db, conversation_id)
    if row.status == "completed":
        raise ValueError("Conversation already completed")

    is_skip = not text.strip()
    messages = list(row.messages or [])
    if not is_skip:
        messages.append({"sender": "user", "message": text, "timestamp": _now_iso()})

    data = cache.get_conversation_data(row.scenarioId, row.personaId or row.scenarioId)
    scenario = data["scenario"]
    result = ai.generate_response(
        {**scenario, "difficulty": row.difficulty},
        messages,
        data["persona"],
        None if is_skip else text,
    )
    messages.append(_ai_message(result))

    # JSON 컬럼은 새 리스트로 재할당해야 변경이 감지됨
    row.messages = messages
    row.turnCount = (row.turnCount or 0) + 1

    if row.turnCount >= max_turns:
        row.status = "completed"
        row.completedAt = datetime.now(timezone.utc)
        if row.personaStatuses:
            updated = DynamicSituationManager.update_persona_statuses(
                row.personaId,
                messages,
                [PersonaStatus(**s) for s in row.personaStatuses],
                scenario_context(scenario),
            )
            row.personaStatuses = [s.model_dump() for s in updated]

    db.commit()
    db.refresh(row)
    log.info("[CONV] id=%s turn=%d/%d skip=%s status=%s", row.id, row.turnCount, max_turns, is_skip, row.status)
    return row, result


# ---------------------------
# 📌 전략 대화 (순서 선택 / 회고)
# ---------------------------
def add_persona_selection(db: Session, conversation_id: str, selection: PersonaSelection) -> Conversation:
    row = require_conversation(db, conversation_id)
    item = selection.model_dump()
    item["timestamp"] = item.get("timestamp") or _now_iso()
    row.personaSelections = [*(row.personaSelections or []), item]
    db.commit()
    db.refresh(row)
    return row


def get_persona_selections(db: Session, conversation_id: str) -> List[Dict[str, Any]]:
    return list(require_conversation(db, conversation_id).personaSelections or [])


def save_sequence_plan(db: Session, conversation_id: str, body: SequencePlanRequest) -> Conversation:
    """순차 대화 계획 전체를 한 번에 저장 (기존 선택은 덮어씀)"""
    row = require_conversation(db, conversation_id)
    row.personaSelections = [s.model_dump() for s in body.sequencePlan]
    row.conversationType = body.conversationType or "sequential"
    db.commit()
    db.refresh(row)
    return row


def add_strategy_choice(db: Session, conversation_id: str, choice: StrategyChoice) -> Conversation:
    row = require_conversation(db, conversation_id)
    item = choice.model_dump()
    item["timestamp"] = item.get("timestamp") or _now_iso()
    row.strategyChoices = [*(row.strategyChoices or []), item]
    db.commit()
    db.refresh(row)
    return row


def get_strategy_choices(db: Session, conversation_id: str) -> List[Dict[str, Any]]:
    return list(require_conversation(db, conversation_id).strategyChoices or [])


def analyze_sequence(
    db: Session,
    conversation_id: str,
    cache: ConversationCache,
    persona_statuses: Optional[List[PersonaStatus]] = None,
) -> SequenceAnalysis:
    """저장된 선택 순서를 분석해 대화에 저장. persona_statuses를 주면 저장된 상태 대신 사용"""
    row = require_conversation(db, conversation_id)
    selections = [PersonaSelection(**s) for s in row.personaSelections or []]
    statuses = persona_statuses
    if statuses is None:
        statuses = [PersonaStatus(**s) for s in row.personaStatuses or []]

    try:
        context = scenario_context(cache.get_scenario(row.scenarioId))
    except LookupError:
        log.warning("[SEQ] 시나리오 없음, 컨텍스트 없이 분석: %s", row.scenarioId)
        context = None

    analysis = SequenceLogicAnalyzer.analyze_selection_order(selections, statuses, context)
    row.sequenceAnalysis = analysis.model_dump()
    db.commit()
    db.refresh(row)
    return analysis


def get_sequence_analysis(db: Session, conversation_id: str) -> Dict[str, Any] | None:
    return require_conversation(db, conversation_id).sequenceAnalysis


def save_strategy_reflection(
    db: Session, conversation_id: str, reflection: str, conversation_order: List[str]
) -> Conversation:
    row = require_conversation(db, conversation_id)
    row.strategyReflection = reflection
    row.conversationOrder = list(conversation_order)
    db.commit()
    db.refresh(row)
    return row
