# trainer/ai/sequence_analyzer.py
"""
인바스켓(AC) 스타일 전략 선택 분석기.

사용자가 정한 대화 순서를 페르소나 상태 기반 "권장 순서"와 비교하고,
선택 사유의 논리성/전략성/상황 적응력을 1~5점으로 평가한다.
순수 계산만 하며 상태를 갖지 않는다.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..schemas.strategy import PersonaSelection, PersonaStatus, SequenceAnalysis
from ..utils.scoring import clamp, round_half_up

log = logging.getLogger(__name__)

# 권장 순서 계산용 가중치 (합계 1.0)
PRIORITY_WEIGHTS = {
    "influence": 0.30,        # 영향력
    "approachability": 0.25,  # 접근 용이성
    "information": 0.25,      # 보유 정보 수
    "relationships": 0.20,    # 인맥 관계 수
}

MOOD_MULTIPLIER = {
    "positive": 1.2,
    "neutral": 1.0,
    "negative": 0.8,
    "unknown": 0.9,
}

_CAUSAL_WORDS = ("때문에", "위해", "통해")
_SITUATION_WORDS = ("상황", "문제", "해결")
_PROGRESSION_WORDS = ("이전", "다음")
_INFO_WORDS = ("정보", "파악")
_INFLUENCE_WORDS = ("영향", "결정권", "권한")
_TIME_WORDS = ("시간", "빠르게", "즉시")
_RISK_WORDS = ("위험", "안전", "신중")
_CAUTION_WORDS = ("신중", "조심")


def _contains_any(text: str, words: Sequence[str]) -> bool:
    return any(w in text for w in words)


def _to_score(value: float) -> int:
    return clamp(round_half_up(value), 1, 5)


class SequenceLogicAnalyzer:

    @staticmethod
    def analyze_selection_order(
        selections: List[PersonaSelection],
        persona_statuses: List[PersonaStatus],
        scenario_context: Optional[Dict[str, Any]] = None,
    ) -> SequenceAnalysis:
        """페르소나 선택 순서의 논리성 분석 (메인 진입점)"""
        selection_order = SequenceLogicAnalyzer.selection_order(selections, persona_statuses)
        optimal_order = SequenceLogicAnalyzer.calculate_optimal_order(persona_statuses)

        order_score = SequenceLogicAnalyzer.evaluate_order_logic(selections, persona_statuses)
        reasoning_quality = SequenceLogicAnalyzer.evaluate_reasoning_quality(selections)
        strategic_thinking = SequenceLogicAnalyzer.evaluate_strategic_thinking(selections)
        adaptability = SequenceLogicAnalyzer.evaluate_adaptability(selections, persona_statuses)

        overall = round_half_up(
            (order_score + reasoning_quality + strategic_thinking + adaptability) / 4
        )

        log.info(
            "[SEQ] scenario=%s order=%s optimal=%s scores=(%d,%d,%d,%d) overall=%d",
            (scenario_context or {}).get("title", "-"), selection_order, optimal_order,
            order_score, reasoning_quality, strategic_thinking, adaptability, overall,
        )

        return SequenceAnalysis(
            selectionOrder=selection_order,
            optimalOrder=optimal_order,
            orderScore=order_score,
            reasoningQuality=reasoning_quality,
            strategicThinking=strategic_thinking,
            adaptability=adaptability,
            overallEffectiveness=overall,
            detailedAnalysis=SequenceLogicAnalyzer.generate_detailed_analysis(
                selections, persona_statuses
            ),
            improvements=SequenceLogicAnalyzer.generate_improvements(
                order_score, reasoning_quality, strategic_thinking, adaptability
            ),
            strengths=SequenceLogicAnalyzer.generate_strengths(
                order_score, reasoning_quality, strategic_thinking, adaptability
            ),
        )

    # ---------- 순서 ----------
    @staticmethod
    def calculate_priority_score(persona: PersonaStatus) -> float:
        w = PRIORITY_WEIGHTS
        score = (
            persona.influence * w["influence"]
            + persona.approachability * w["approachability"]
            + min(5, len(persona.availableInfo)) * w["information"]
            + min(5, len(persona.keyRelationships)) * w["relationships"]
        )
        return score * MOOD_MULTIPLIER.get(persona.currentMood, 1.0)

    @staticmethod
    def calculate_optimal_order(persona_statuses: List[PersonaStatus]) -> List[int]:
        """우선순위 점수 내림차순의 1-based 인덱스 목록 (동점은 원래 순서 유지)"""
        scored = [
            (index + 1, SequenceLogicAnalyzer.calculate_priority_score(p))
            for index, p in enumerate(persona_statuses)
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return [index for index, _ in scored]

    @staticmethod
    def selection_order(
        selections: List[PersonaSelection],
        persona_statuses: List[PersonaStatus],
    ) -> List[int]:
        """사용자가 고른 페르소나들의 1-based 상태 인덱스 (phase 순). 모르는 id는 제외"""
        index_by_id = {p.personaId: i + 1 for i, p in enumerate(persona_statuses)}
        ordered = sorted(selections, key=lambda s: s.phase)
        return [index_by_id[s.personaId] for s in ordered if s.personaId in index_by_id]

    @staticmethod
    def calculate_order_correlation(order1: Sequence[float], order2: Sequence[float]) -> float:
        """
        Kendall tau 근사: (일치쌍 - 불일치쌍) / (일치쌍 + 불일치쌍).
        길이가 다르거나 비교 가능한 쌍이 없으면 0.
        """
        if len(order1) != len(order2):
            return 0.0

        concordant = discordant = 0
        n = len(order1)
        for i in range(n - 1):
            for j in range(i + 1, n):
                product = (order1[i] - order1[j]) * (order2[i] - order2[j])
                if product > 0:
                    concordant += 1
                elif product < 0:
                    discordant += 1

        total = concordant + discordant
        return 0.0 if total == 0 else (concordant - discordant) / total

    @staticmethod
    def evaluate_order_logic(
        selections: List[PersonaSelection],
        persona_statuses: List[PersonaStatus],
    ) -> int:
        optimal = SequenceLogicAnalyzer.calculate_optimal_order(persona_statuses)
        rank = {index: position for position, index in enumerate(optimal)}
        actual = SequenceLogicAnalyzer.selection_order(selections, persona_statuses)

        # 사용자가 몇 번째로 골랐는지 vs 권장 순서상 몇 번째인지
        chosen_positions = list(range(len(actual)))
        optimal_positions = [rank[index] for index in actual]
        correlation = SequenceLogicAnalyzer.calculate_order_correlation(
            chosen_positions, optimal_positions
        )
        return _to_score(1 + (correlation + 1) * 2)

    # ---------- 사유 / 전략 / 적응 ----------
    @staticmethod
    def evaluate_reasoning_quality(selections: List[PersonaSelection]) -> int:
        total = 0
        valid = 0
        for selection in selections:
            reason = selection.selectionReason or ""
            if not reason.strip():
                continue

            lowered = reason.lower()
            score = 1
            if _contains_any(lowered, _CAUSAL_WORDS):
                score += 1
            if _contains_any(lowered, _SITUATION_WORDS):
                score += 1
            if len((selection.expectedOutcome or "").strip()) > 10:
                score += 1
            if len(reason) > 20:
                score += 1

            total += min(5, score)
            valid += 1

        return round_half_up(total / valid) if valid else 1

    @staticmethod
    def evaluate_strategic_thinking(selections: List[PersonaSelection]) -> int:
        max_elements = 5
        elements = 0
        reasons = [s.selectionReason or "" for s in selections]
        outcomes = [s.expectedOutcome or "" for s in selections]

        # 단계적 접근 (두 번째 선택부터 앞뒤 단계를 언급)
        if len(selections) > 1 and any(
            _contains_any(r, _PROGRESSION_WORDS) for r in reasons[1:]
        ):
            elements += 1
        # 정보 수집
        if any(_contains_any(r, _INFO_WORDS) for r in reasons) or any("확인" in o for o in outcomes):
            elements += 1
        # 영향력 고려
        if any(_contains_any(r, _INFLUENCE_WORDS) for r in reasons):
            elements += 1
        # 시간 효율
        if any(_contains_any(r, _TIME_WORDS) for r in reasons):
            elements += 1
        # 리스크 관리
        if any(_contains_any(r, _RISK_WORDS) for r in reasons):
            elements += 1

        return _to_score(1 + (elements / max_elements) * 4)

    @staticmethod
    def evaluate_adaptability(
        selections: List[PersonaSelection],
        persona_statuses: List[PersonaStatus],
    ) -> int:
        score = 3.0
        status_by_id = {p.personaId: p for p in persona_statuses}

        for i, selection in enumerate(sorted(selections, key=lambda s: s.phase)):
            status = status_by_id.get(selection.personaId)
            if status is None:
                continue
            # 접근하기 어려운 상대를 첫 대화로 고르지 않음
            if status.approachability < 3 and i > 0:
                score += 0.5
            # 기분이 나쁜 상대에게 신중하게 접근
            if status.currentMood == "negative" and _contains_any(
                selection.selectionReason or "", _CAUTION_WORDS
            ):
                score += 0.5

        return _to_score(score)

    # ---------- 텍스트 ----------
    @staticmethod
    def generate_detailed_analysis(
        selections: List[PersonaSelection],
        persona_statuses: List[PersonaStatus],
    ) -> str:
        optimal = SequenceLogicAnalyzer.calculate_optimal_order(persona_statuses)
        actual = SequenceLogicAnalyzer.selection_order(selections, persona_statuses)
        status_by_id = {p.personaId: p for p in persona_statuses}

        lines = [
            f"선택된 대화 순서: {' → '.join(map(str, actual))}",
            f"권장 순서: {' → '.join(map(str, optimal))}",
            "",
        ]
        for rank, selection in enumerate(sorted(selections, key=lambda s: s.phase), start=1):
            persona = status_by_id.get(selection.personaId)
            lines.append(f"{rank}순위 선택 분석:")
            lines.append(f"- 대상: {persona.name if persona else '알 수 없음'}")
            lines.append(f"- 선택 사유: {selection.selectionReason}")
            lines.append(f"- 기대 효과: {selection.expectedOutcome}")
            if persona:
                lines.append(
                    f"- 대상자 특성: 영향력 {persona.influence:g}/5, 접근성 {persona.approachability:g}/5"
                )
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def generate_improvements(
        order_score: int, reasoning_quality: int, strategic_thinking: int, adaptability: int
    ) -> List[str]:
        improvements = []
        if order_score < 3:
            improvements.append(
                "대화 순서를 더 논리적으로 계획해보세요. 영향력과 접근성을 고려한 우선순위 설정이 필요합니다."
            )
        if reasoning_quality < 3:
            improvements.append(
                '선택 사유를 더 구체적이고 논리적으로 설명해주세요. "왜 이 사람을 선택했는지" 명확한 근거를 제시하세요.'
            )
        if strategic_thinking < 3:
            improvements.append(
                "전체적인 해결 전략을 수립하고, 단계별 목표를 설정해보세요. "
                "정보 수집 → 의견 조율 → 결정권자 설득 등의 순서를 고려하세요."
            )
        if adaptability < 3:
            improvements.append("상대방의 성격, 기분, 상황을 더 섬세하게 고려한 접근이 필요합니다.")
        return improvements

    @staticmethod
    def generate_strengths(
        order_score: int, reasoning_quality: int, strategic_thinking: int, adaptability: int
    ) -> List[str]:
        strengths = []
        if order_score >= 4:
            strengths.append("논리적이고 효율적인 대화 순서를 잘 계획했습니다.")
        if reasoning_quality >= 4:
            strengths.append("선택에 대한 명확하고 설득력 있는 근거를 제시했습니다.")
        if strategic_thinking >= 4:
            strengths.append("전략적 사고와 단계적 접근 방식이 뛰어납니다.")
        if adaptability >= 4:
            strengths.append("상황과 상대방의 특성을 잘 고려한 유연한 대응을 보였습니다.")
        return strengths
