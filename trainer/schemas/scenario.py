from pydantic import BaseModel
from typing import List

# 시나리오 목록 조회용 (간단 버전)
class ScenarioBase(BaseModel):
    id: str
    title: str
    description: str = ""
    difficulty: int = 2
    estimatedTime: str | None = None
    skills: List[str] = []
    personaCount: int = 0
