# trainer/ai/situation_manager.py
"""
동적 상황 관리.
한 페르소나와의 대화 결과에 따라 그 사람과 주변 인물들의 상태(기분/접근성)를 갱신한다.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..schemas.strategy import PersonaStatus
from ..utils.scoring import clamp, round_to_half

log = logging.getLogger(__name__)

POSITION_HIERARCHY = ["사원", "주임", "대리", "과장", "차장", "부장", "이사", "상무", "전무"]

_POSITIVE_EMOTIONS = ("기쁨", "만족", "긍정", "positive")
_NEGATIVE_EMOTIONS = ("분노", "실망", "부정", "negative")
_POLITENESS_WORDS = ("감사", "죄송", "부탁", "도움", "이해", "존중")
_INFO_WORDS = ("정보", "상황", "문제", "해결", "계획", "방법", "의견", "생각")


@dataclass
class ConversationResult:
    success: str = "neutral"        # success/neutral/failure
    mood: str = "neutral"           # positive/neutral/negative
    informationGained: List[str] = field(default_factory=list)
    conflictLevel: int = 0          # 0~5
    cooperationLevel: int = 3       # 1~5
    trustLevel: int = 3             # 1~5


def _field(obj: Any, name: str) -> str:
    if isinstance(obj, dict):
        return obj.get(name) or ""
    return getattr(obj, name, None) or ""


def _sender(msg: Any) -> str:
    return _field(msg, "sender")


def is_higher_position(pos1: str, pos2: str) -> bool:
    """pos1이 pos2보다 높은 직급이면 True (모르는 직급은 비교 불가)"""
    level1 = next((i for i, lv in enumerate(POSITION_HIERARCHY) if lv in pos1), -1)
    level2 = next((i for i, lv in enumerate(POSITION_HIERARCHY) if lv in pos2), -1)
    return level1 != -1 and level2 != -1 and level1 > level2


class DynamicSituationManager:

    # ---------- 대화 후 상태 갱신 ----------
    @staticmethod
    def update_persona_statuses(
        current_persona_id: str,
        messages: List[Any],
        persona_statuses: List[PersonaStatus],
        scenario_context: Optional[Dict[str, Any]] = None,
    ) -> List[PersonaStatus]:
        result = DynamicSituationManager.analyze_conversation_result(messages)
        talked_name = DynamicSituationManager._persona_name(current_persona_id, scenario_context)

        updated: List[PersonaStatus] = []
        for status in persona_statuses:
            if status.personaId == current_persona_id:
                updated.append(status.model_copy(update={
                    "hasBeenContacted": True,
                    "lastInteractionResult": result.success,
                    "currentMood": result.mood,
                    "approachability": DynamicSituationManager._new_approachability(status, result),
                }))
            else:
                updated.append(
                    DynamicSituationManager._update_related_status(status, talked_name, result)
                )

        log.info("[SITUATION] persona=%s result=%s mood=%s", current_persona_id, result.success, result.mood)
        return updated

    @staticmethod
    def analyze_conversation_result(messages: List[Any]) -> ConversationResult:
        user_messages = [m for m in messages if _sender(m) == "user"]
        ai_messages = [m for m in messages if _sender(m) == "ai"]
        if not user_messages or not ai_messages:
            return ConversationResult()

        success_score = 3
        mood_score = 3
        conflict = 0
        cooperation = 3
        trust = 3

        emotions = [_field(m, "emotion") for m in ai_messages if _field(m, "emotion")]
        positives = sum(1 for e in emotions if any(p in e for p in _POSITIVE_EMOTIONS))
        negatives = sum(1 for e in emotions if any(n in e for n in _NEGATIVE_EMOTIONS))

        avg_len = sum(len(_field(m, "message")) for m in user_messages) / len(user_messages)
        if avg_len > 50:
            success_score += 1
        if avg_len < 20:
            success_score -= 1

        politeness = sum(
            sum(1 for w in _POLITENESS_WORDS if w in _field(m, "message")) for m in user_messages
        )
        if politeness > 2:
            success_score += 1
            trust += 1

        if positives > negatives:
            success_score += 1
            mood_score += 1
            cooperation += 1
        elif negatives > positives:
            success_score -= 1
            mood_score -= 1
            conflict += 1

        gained: List[str] = []
        for m in ai_messages:
            for word in _INFO_WORDS:
                label = f"{word} 관련 정보"
                if word in _field(m, "message") and label not in gained:
                    gained.append(label)

        success = "success" if success_score >= 4 else "failure" if success_score <= 2 else "neutral"
        mood = "positive" if mood_score >= 4 else "negative" if mood_score <= 2 else "neutral"

        return ConversationResult(
            success=success,
            mood=mood,
            informationGained=gained,
            conflictLevel=clamp(conflict, 0, 5),
            cooperationLevel=clamp(cooperation, 1, 5),
            trustLevel=clamp(trust, 1, 5),
        )

    @staticmethod
    def _new_approachability(status: PersonaStatus, result: ConversationResult) -> float:
        value = status.approachability
        if result.success == "success":
            value = min(5, value + 0.5)
        elif result.success == "failure":
            value = max(1, value - 1)
        return round_to_half(value)

    @staticmethod
    def _update_related_status(
        status: PersonaStatus, talked_name: str, result: ConversationResult
    ) -> PersonaStatus:
        mood = status.currentMood
        value = status.approachability

        is_related = bool(talked_name) and any(talked_name in rel for rel in status.keyRelationships)
        if is_related:
            if result.success == "success":
                mood = {"negative": "neutral", "neutral": "positive"}.get(mood, mood)
                value = min(5, value + 0.3)
            elif result.success == "failure":
                mood = {"positive": "neutral", "neutral": "negative"}.get(mood, mood)
                value = max(1, value - 0.5)

        if result.conflictLevel > 3:
            value = max(1, value - 0.2)
        if result.cooperationLevel > 4:
            value = min(5, value + 0.2)

        return status.model_copy(update={
            "currentMood": mood,
            "approachability": clamp(round_to_half(value), 1, 5),
        })

    @staticmethod
    def _persona_name(persona_id: str, scenario_context: Optional[Dict[str, Any]]) -> str:
        for p in (scenario_context or {}).get("personas", []) or []:
            if p.get("id") == persona_id:
                return p.get("name") or ""
        return ""

    # ---------- 초기 상태 ----------
    @staticmethod
    def generate_initial_persona_statuses(
        personas: List[Dict[str, Any]],
        scenario_context: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> List[PersonaStatus]:
        rng = rng or random.Random()
        statuses = []
        for persona in personas:
            statuses.append(PersonaStatus(
                personaId=persona["id"],
                name=persona.get("name") or persona["id"],
                currentMood=DynamicSituationManager._initial_mood(scenario_context, rng),
                approachability=DynamicSituationManager._base_approachability(persona),
                influence=DynamicSituationManager._base_influence(persona),
                hasBeenContacted=False,
                availableInfo=DynamicSituationManager._available_info(persona, scenario_context),
                keyRelationships=DynamicSituationManager._key_relationships(persona, personas),
            ))
        return statuses

    @staticmethod
    def _base_approachability(persona: Dict[str, Any]) -> float:
        position = persona.get("position") or ""
        score = 3.0
        if "부장" in position or "이사" in position:
            score -= 1
        elif "과장" in position or "팀장" in position:
            score -= 0.5
        elif "사원" in position or "주임" in position:
            score += 0.5

        # MBTI 외향(E)/내향(I)
        mbti = (persona.get("mbti") or (persona.get("personaRef") or "").split(".")[0]).upper()
        if mbti.startswith("E"):
            score += 0.5
        elif mbti.startswith("I"):
            score -= 0.5

        return clamp(round_to_half(score), 1, 5)

    @staticmethod
    def _base_influence(persona: Dict[str, Any]) -> float:
        position = persona.get("position") or ""
        department = persona.get("department") or ""
        if "이사" in position or "본부장" in position:
            score = 5.0
        elif "부장" in position or "팀장" in position:
            score = 4.0
        elif "과장" in position or "선임" in position:
            score = 3.0
        else:
            score = 2.0

        if "경영" in department or "전략" in department:
            score += 0.5

        return clamp(round_to_half(score), 1, 5)

    @staticmethod
    def _initial_mood(scenario_context: Optional[Dict[str, Any]], rng: random.Random) -> str:
        situation = ((scenario_context or {}).get("situation") or "").lower()
        roll = rng.random()
        if any(w in situation for w in ("위기", "문제", "갈등")):
            return "negative" if roll < 0.6 else "neutral"
        if any(w in situation for w in ("성공", "좋은", "기회")):
            return "positive" if roll < 0.6 else "neutral"
        if roll < 0.2:
            return "positive"
        if roll < 0.7:
            return "neutral"
        if roll < 0.9:
            return "negative"
        return "unknown"

    @staticmethod
    def _available_info(persona: Dict[str, Any], scenario_context: Optional[Dict[str, Any]]) -> List[str]:
        position = persona.get("position") or ""
        department = persona.get("department") or ""
        info: List[str] = []

        if "이사" in position or "부장" in position:
            info += ["전략적 결정 정보", "예산 관련 정보", "인사 정보"]
        if "팀장" in position or "과장" in position:
            info += ["팀 운영 정보", "프로젝트 진행 상황", "팀원 성과"]

        if "개발" in department or "기술" in department:
            info += ["기술적 문제점", "개발 일정", "시스템 현황"]
        if "영업" in department or "마케팅" in department:
            info += ["고객 반응", "시장 상황", "매출 현황"]
        if "인사" in department or "HR" in department:
            info += ["직원 만족도", "조직 문화", "채용 현황"]

        situation = (scenario_context or {}).get("situation") or ""
        for keyword, label in (
            ("프로젝트", "프로젝트 세부사항"),
            ("예산", "예산 배정 현황"),
            ("일정", "스케줄 관련 정보"),
            ("고객", "고객 요구사항"),
        ):
            if keyword in situation:
                info.append(label)

        return info[:4]

    @staticmethod
    def _key_relationships(persona: Dict[str, Any], all_personas: List[Dict[str, Any]]) -> List[str]:
        relationships = [
            f"{p.get('name')} (같은 부서)"
            for p in all_personas
            if p.get("id") != persona.get("id")
            and p.get("department")
            and p.get("department") == persona.get("department")
        ]
        seniors = [
            p for p in all_personas
            if p.get("id") != persona.get("id")
            and is_higher_position(p.get("position") or "", persona.get("position") or "")
        ]
        relationships += [f"{p.get('name')} (상급자)" for p in seniors[:2]]
        return relationships[:3]
