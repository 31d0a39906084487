# trainer/routers/scenarios.py
from fastapi import APIRouter, Depends, HTTPException

from ..ai.situation_manager import DynamicSituationManager
from ..deps import get_conversation_cache
from ..schemas.scenario import ScenarioBase
from ..schemas.strategy import PersonaStatus
from ..services.conversation_cache import ConversationCache
from ..services.conversation_service import scenario_context

router = APIRouter(prefix="/api/scenarios", tags=["scenarios"])


# 1. 시나리오 목록 조회
@router.get("", response_model=list[ScenarioBase])
def list_scenarios(cache: ConversationCache = Depends(get_conversation_cache)):
    return [
        ScenarioBase(
            id=s["id"],
            title=s.get("title") or s["id"],
            description=s.get("description") or "",
            difficulty=s.get("difficulty") or 2,
            estimatedTime=s.get("estimatedTime"),
            skills=s.get("skills") or [],
            personaCount=len(s.get("personas") or []),
        )
        for s in cache.repository.list_scenarios()
    ]


# 2. 특정 시나리오 상세 조회 (원본 JSON 그대로)
@router.get("/{scenario_id}")
def get_scenario(scenario_id: str, cache: ConversationCache = Depends(get_conversation_cache)):
    try:
        return cache.get_scenario(scenario_id)
    except LookupError:
        raise HTTPException(404, "Scenario not found")


# 3. 전략 선택 화면용 페르소나 초기 상태
@router.get("/{scenario_id}/persona-statuses", response_model=list[PersonaStatus])
def get_persona_statuses(scenario_id: str, cache: ConversationCache = Depends(get_conversation_cache)):
    try:
        scenario = cache.get_scenario(scenario_id)
    except LookupError:
        raise HTTPException(404, "Scenario not found")
    return DynamicSituationManager.generate_initial_persona_statuses(
        scenario.get("personas") or [], scenario_context(scenario)
    )
