# trainer/services/feedback_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..ai.persona_ai import PersonaConversationAI
from ..config import settings
from ..models.conversation import Conversation
from ..models.feedback import Feedback
from .conversation_cache import ConversationCache
from .conversation_service import require_conversation

log = logging.getLogger(__name__)

# (category, 이름, 설명, 아이콘, 색상)
EVALUATION_CATEGORIES = [
    ("clarityLogic", "명확성 & 논리성", "발언의 구조화, 핵심 전달, 모호성 최소화", "🎯", "blue"),
    ("listeningEmpathy", "경청 & 공감", "재진술·요약, 감정 인식, 우려 존중", "👂", "green"),
    ("appropriatenessAdaptability", "적절성 & 상황 대응", "맥락 적합한 표현, 유연한 갈등 대응", "⚡", "yellow"),
    ("persuasivenessImpact", "설득력 & 영향력", "논리적 근거, 사례 활용, 행동 변화 유도", "🎪", "purple"),
    ("strategicCommunication", "전략적 커뮤니케이션", "목표 지향적 대화, 협상·조율, 주도성", "🎲", "red"),
]


def get_feedback(db: Session, conversation_id: str) -> Feedback | None:
    return db.query(Feedback).filter(Feedback.conversationId == conversation_id).first()


def list_feedbacks(db: Session) -> List[Feedback]:
    return db.query(Feedback).order_by(Feedback.createdAt.desc()).all()


def generate_feedback(
    db: Session,
    conversation_id: str,
    cache: ConversationCache,
    ai: PersonaConversationAI,
    max_turns: Optional[int] = None,
) -> Feedback:
    """
    완료(또는 max_turns 이상 진행)된 대화의 피드백 생성.
    이미 있으면 기존 피드백을 그대로 반환.
    """
    max_turns = max_turns or settings.max_turns
    row = require_conversation(db, conversation_id)
    if row.status != "completed" and (row.turnCount or 0) < max_turns:
        raise ValueError("Conversation not completed yet")

    existing = get_feedback(db, conversation_id)
    if existing:
        log.info("[FEEDBACK] 기존 피드백 반환: %s", conversation_id)
        return existing

    data = cache.get_conversation_data(row.scenarioId, row.personaId or row.scenarioId)
    detailed = ai.generate_feedback(row.messages or [], data["persona"])
    detailed.update(time_metrics(row))
    if row.sequenceAnalysis:
        detailed["sequenceAnalysis"] = row.sequenceAnalysis

    fb = Feedback(
        conversationId=row.id,
        overallScore=detailed["overallScore"],
        scores=evaluation_scores(detailed["scores"]),
        detailedFeedback=detailed,
    )
    db.add(fb)
    try:
        db.commit()
    except IntegrityError:
        # 동시 요청이 먼저 저장함 (conversationId unique)
        db.rollback()
        log.info("[FEEDBACK] 동시 생성 감지, 기존 피드백 반환: %s", conversation_id)
        existing = get_feedback(db, conversation_id)
        if existing is None:
            raise
        return existing
    db.refresh(fb)
    log.info("[FEEDBACK] 생성 완료: conv=%s overall=%d", row.id, fb.overallScore)
    return fb


def evaluation_scores(scores: Dict[str, int]) -> List[Dict[str, Any]]:
    return [
        {
            "category": category,
            "name": name,
            "score": scores.get(category, 3),
            "feedback": description,
            "icon": icon,
            "color": color,
        }
        for category, name, description, icon, color in EVALUATION_CATEGORIES
    ]


def time_metrics(conversation: Conversation) -> Dict[str, Any]:
    """대화 시간(초/분), 사용자 평균 응답 시간(초), 발화 밀도 기반 시간 성과"""
    duration_seconds = 0
    if conversation.completedAt and conversation.createdAt:
        duration_seconds = max(0, int((_aware(conversation.completedAt) - _aware(conversation.createdAt)).total_seconds()))
    duration_minutes = duration_seconds // 60

    user_messages = [m for m in conversation.messages or [] if m.get("sender") == "user"]
    total_chars = sum(len(m.get("message") or "") for m in user_messages)
    average_response_time = (
        round(duration_minutes * 60 / len(user_messages)) if duration_minutes > 0 and user_messages else 0
    )

    return {
        "conversationDuration": duration_seconds,
        "conversationDurationMinutes": duration_minutes,
        "averageResponseTime": average_response_time,
        "timePerformance": time_performance(len(user_messages), total_chars, duration_minutes),
    }


def time_performance(user_message_count: int, total_chars: int, duration_minutes: int) -> Dict[str, str]:
    if user_message_count == 0 or total_chars == 0:
        return {"rating": "slow", "feedback": "대화 참여 없음 - 시간 평가 불가"}

    density = total_chars / duration_minutes if duration_minutes > 0 else 0  # 분당 글자 수
    avg_len = total_chars / user_message_count
    detail = f"(밀도: {density:.1f}자/분, 평균: {avg_len:.0f}자/발언)"

    if density >= 30 and avg_len >= 20:
        rating = "excellent" if duration_minutes <= 10 else "good"
        return {"rating": rating, "feedback": f"활발한 대화 참여 {detail}"}
    if density >= 15 and avg_len >= 10:
        rating = "good" if duration_minutes <= 15 else "average"
        return {"rating": rating, "feedback": f"적절한 대화 참여 {detail}"}
    if density >= 5 and avg_len >= 5:
        return {"rating": "average", "feedback": f"소극적 참여 {detail}"}
    return {"rating": "slow", "feedback": f"매우 소극적 참여 {detail}"}


def _aware(dt: datetime) -> datetime:
    # SQLite는 tzinfo를 저장하지 않음
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
