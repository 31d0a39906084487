# trainer/services/scenario_service.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import settings

log = logging.getLogger(__name__)


def mbti_of(persona: Dict[str, Any]) -> str:
    """시나리오 페르소나의 MBTI (mbti 필드 우선, 없으면 personaRef 'istj.json'에서 추출)"""
    mbti = persona.get("mbti") or (persona.get("personaRef") or "").split(".")[0]
    return mbti.lower()


class ScenarioRepository:
    """scenarios/*.json, personas/<mbti>.json 읽기 전용 저장소"""

    def __init__(self, scenarios_dir: str | None = None, personas_dir: str | None = None):
        self.scenarios_dir = Path(scenarios_dir or settings.scenarios_dir)
        self.personas_dir = Path(personas_dir or settings.personas_dir)

    # 시나리오 전체 목록 (깨진 파일은 건너뜀)
    def list_scenarios(self) -> List[Dict[str, Any]]:
        if not self.scenarios_dir.is_dir():
            log.warning("[SCENARIO] 시나리오 디렉터리 없음: %s", self.scenarios_dir)
            return []

        scenarios = []
        for path in sorted(self.scenarios_dir.glob("*.json")):
            data = self._read_json(path)
            if not data or not data.get("id"):
                continue
            scenarios.append(data)
        return scenarios

    # 특정 시나리오 조회
    def get_scenario(self, scenario_id: str) -> Optional[Dict[str, Any]]:
        return next((s for s in self.list_scenarios() if s.get("id") == scenario_id), None)

    def get_mbti_persona(self, mbti: str) -> Optional[Dict[str, Any]]:
        if not mbti:
            return None
        path = self.personas_dir / f"{mbti.lower()}.json"
        if not path.is_file():
            log.info("[SCENARIO] MBTI 페르소나 파일 없음: %s", path)
            return None
        return self._read_json(path)

    @staticmethod
    def _read_json(path: Path) -> Optional[Dict[str, Any]]:
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("[SCENARIO] 파일 읽기 실패, 건너뜀: %s (%s)", path.name, e)
            return None
        if not isinstance(data, dict):
            log.warning("[SCENARIO] 객체가 아닌 JSON, 건너뜀: %s", path.name)
            return None
        return data
