# trainer/services/conversation_cache.py
"""
시나리오 / MBTI 프로필 / 조립된 페르소나를 프로세스 메모리에 캐싱.
매 턴마다 파일을 다시 읽지 않도록 한다.
"""
import logging
from typing import Any, Dict, Optional

from .scenario_service import ScenarioRepository, mbti_of

log = logging.getLogger(__name__)


class ConversationCache:

    def __init__(self, repository: Optional[ScenarioRepository] = None):
        self.repository = repository or ScenarioRepository()
        self._scenarios: Dict[str, Dict[str, Any]] = {}
        self._personas: Dict[str, Dict[str, Any]] = {}
        self._mbti: Dict[str, Dict[str, Any]] = {}

    def get_conversation_data(self, scenario_id: str, persona_id: str) -> Dict[str, Any]:
        """
        대화 한 턴에 필요한 데이터를 한 번에 반환.
        반환: {"scenario", "persona", "mbtiPersona"}
        시나리오나 페르소나가 없으면 LookupError.
        """
        scenario = self.get_scenario(scenario_id)
        scenario_persona = next(
            (p for p in scenario.get("personas") or [] if p.get("id") == persona_id), None
        )
        if scenario_persona is None:
            raise LookupError(f"Persona not found: {persona_id}")

        mbti_persona = self.get_mbti(mbti_of(scenario_persona))
        persona = self._build_persona(scenario_persona, mbti_persona)
        return {"scenario": scenario, "persona": persona, "mbtiPersona": mbti_persona}

    def get_scenario(self, scenario_id: str) -> Dict[str, Any]:
        if scenario_id in self._scenarios:
            log.debug("[CACHE] 시나리오 적중: %s", scenario_id)
            return self._scenarios[scenario_id]

        scenario = self.repository.get_scenario(scenario_id)
        if scenario is None:
            raise LookupError(f"Scenario not found: {scenario_id}")
        self._scenarios[scenario_id] = scenario
        return scenario

    def get_mbti(self, mbti: str) -> Optional[Dict[str, Any]]:
        if not mbti:
            return None
        if mbti in self._mbti:
            return self._mbti[mbti]

        profile = self.repository.get_mbti_persona(mbti)
        if profile:
            self._mbti[mbti] = profile
        return profile

    def _build_persona(self, scenario_persona: Dict[str, Any], mbti_persona: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        mbti = mbti_persona or {}
        key = f"{scenario_persona['id']}_{mbti.get('mbti') or 'default'}"
        if key in self._personas:
            return self._personas[key]

        patterns = mbti.get("communication_patterns") or {}
        values = (mbti.get("background") or {}).get("personal_values") or []
        persona = {
            "id": scenario_persona["id"],
            "name": scenario_persona.get("name") or scenario_persona["id"],
            "role": scenario_persona.get("position"),
            "department": scenario_persona.get("department"),
            "personality": mbti.get("communication_style") or "균형 잡힌 의사소통",
            "responseStyle": patterns.get("opening_style") or "상황에 맞는 방식으로 대화 시작",
            "goals": patterns.get("win_conditions") or ["목표 달성"],
            "background": ", ".join(values) or "전문성",
            "keyPhrases": patterns.get("key_phrases") or [],
            "mbti": mbti.get("mbti") or mbti_of(scenario_persona).upper() or None,
            "mbtiContext": self.get_compact_mbti_context(mbti_persona),
            "stance": scenario_persona.get("stance") or "상황에 따른 대응",
            "goal": scenario_persona.get("goal") or "최적의 결과 도출",
        }
        self._personas[key] = persona
        return persona

    # 프롬프트 토큰 절약용 요약
    @staticmethod
    def get_compact_scenario_context(scenario: Dict[str, Any]) -> str:
        situation = (scenario.get("context") or {}).get("situation") or "업무 상황"
        objectives = ", ".join((scenario.get("objectives") or [])[:2]) or "문제 해결"
        return f"상황: {situation[:50]}. 목표: {objectives[:30]}"

    @staticmethod
    def get_compact_mbti_context(mbti_persona: Optional[Dict[str, Any]]) -> str:
        if not mbti_persona:
            return ""
        style = (mbti_persona.get("communication_style") or "")[:20]
        return f"MBTI: {mbti_persona.get('mbti')}. 스타일: {style}"

    def get_cache_stats(self) -> Dict[str, int]:
        return {
            "scenarios": len(self._scenarios),
            "personas": len(self._personas),
            "mbti": len(self._mbti),
        }

    def clear_cache(self) -> None:
        self._scenarios.clear()
        self._personas.clear()
        self._mbti.clear()
        log.info("[CACHE] 전체 캐시 초기화")

    def clear_conversation_cache(self, scenario_id: str, persona_id: str) -> None:
        """특정 시나리오와 그 페르소나로 조립된 캐시만 제거"""
        self._scenarios.pop(scenario_id, None)
        # 키 형식: "{persona_id}_{mbti}" (persona id에 '_'가 들어갈 수 있어 접두사 비교는 안 됨)
        for key in [k for k in self._personas if k.rsplit("_", 1)[0] == persona_id]:
            del self._personas[key]
        log.info("[CACHE] 대화 캐시 제거: scenario=%s persona=%s", scenario_id, persona_id)
