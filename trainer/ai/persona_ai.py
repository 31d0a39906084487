# trainer/ai/persona_ai.py
import logging
from typing import Any, Dict, List, Optional

from google.genai import types

from ..config import settings
from ..services.conversation_cache import ConversationCache
from ..utils.scoring import clamp, round_half_up
from .gemini_client import build_client, lenient_json_loads, response_text

log = logging.getLogger(__name__)

NEUTRAL_EMOTION = "중립"
HISTORY_LIMIT = 4

SCORE_KEYS = (
    "clarityLogic",
    "listeningEmpathy",
    "appropriatenessAdaptability",
    "persuasivenessImpact",
    "strategicCommunication",
)

DIFFICULTY_GUIDE = {
    1: "협조적이고 친절하게 반응하세요. 사용자의 제안을 쉽게 받아들입니다.",
    2: "일반적인 직장 동료처럼 반응하세요. 근거가 있으면 설득됩니다.",
    3: "자신의 입장을 분명히 고수하세요. 구체적 근거 없이는 쉽게 양보하지 않습니다.",
    4: "매우 까다롭게 반응하세요. 압박과 반론을 적극적으로 제기합니다.",
}

_MBTI_FALLBACKS = {
    "ISTJ": "{phrase}, 현재 시스템에 기술적 문제가 발생했습니다. 정확한 진단 후 다시 시도해주시기 바랍니다.",
    "ENTJ": "{phrase}, 시스템 오류로 인해 지금 당장 효율적인 대화가 어렵습니다. 빠른 복구 후 진행하겠습니다.",
    "ENFJ": "정말 죄송합니다. 시스템 문제로 지금 제대로 소통하기 어려운 상황이에요. 조금만 기다려주실 수 있을까요?",
    "INFP": "아... 미안해요. 지금 시스템이 잘 안 되고 있어서... 잠시 후에 다시 이야기해요.",
    "INTP": "흥미롭네요. 시스템 오류 현상이 발생했습니다. 원인 분석 후 다시 접속해보시기 바랍니다.",
    "ESFJ": "어머, 정말 죄송해요! 지금 시스템에 문제가 있어서 제대로 도움을 드리지 못하고 있어요. 곧 해결될 거예요.",
    "ESTP": "아, 시스템이 먹통이네요! 빨리 고쳐서 다시 대화해봐요.",
    "ISFP": "죄송해요... 지금 시스템 상태가 좋지 않아서... 잠시만 기다려주세요.",
}

_FEEDBACK_PROMPT = """다음은 {name}({role})과의 대화에서 사용자의 발언만을 평가하는 것입니다.
AI 페르소나의 응답은 평가 대상이 아닙니다.

[사용자 발언 (평가 대상)]
{user_text}

[전체 대화 맥락 (참고용)]
{full_text}

[대화 통계]
- 총 메시지: {total}개
- 사용자 발화 수: {user_count}회
- 평균 발화 길이: {avg_len}자

[평가 목표]: {goals}

다음 5가지 기준으로 1-5점(1=미흡, 3=보통, 5=우수)을 매기세요:
1. clarityLogic: 명확성 & 논리성
2. listeningEmpathy: 경청 & 공감
3. appropriatenessAdaptability: 적절성 & 상황 대응
4. persuasivenessImpact: 설득력 & 영향력
5. strategicCommunication: 전략적 커뮤니케이션

평균 발화 길이가 20자 미만이거나 무성의한 답변이면 엄격하게 감점하세요.

[반드시 JSON만 출력]
{{
  "overallScore": 0-100,
  "scores": {{"clarityLogic": 1-5, "listeningEmpathy": 1-5, "appropriatenessAdaptability": 1-5,
              "persuasivenessImpact": 1-5, "strategicCommunication": 1-5}},
  "strengths": ["..."], "improvements": ["..."], "nextSteps": ["..."],
  "summary": "종합평가요약",
  "behaviorGuides": [{{"situation": "", "action": "", "example": "", "impact": ""}}],
  "conversationGuides": [{{"scenario": "", "goodExample": "", "badExample": "", "keyPoints": [""]}}]
}}
"""

_DEFAULT_STRENGTHS = ["기본적인 대화 능력", "적절한 언어 사용", "상황 이해도"]
_DEFAULT_IMPROVEMENTS = ["더 구체적인 표현", "감정 교감 증진", "논리적 구조화"]
_DEFAULT_NEXT_STEPS = ["추가 연습 필요", "전문가 피드백 받기", "실무 경험 쌓기"]
_RANKING = "전문가 분석 결과를 바탕으로 한 종합 평가입니다."


def _text(msg: Any, name: str) -> str:
    if isinstance(msg, dict):
        return msg.get(name) or ""
    return getattr(msg, name, None) or ""


class PersonaConversationAI:
    """Gemini로 페르소나 대사(+감정)와 최종 피드백 리포트를 생성"""

    def __init__(self, client=None, model: Optional[str] = None, feedback_model: Optional[str] = None):
        self._client = client
        self.model = model or settings.gemini_model
        self.feedback_model = feedback_model or settings.feedback_model

    @property
    def client(self):
        if self._client is None:
            self._client = build_client()
        return self._client

    def _generate_json(self, model: str, prompt: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
        resp = self.client.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            ),
        )
        return lenient_json_loads(response_text(resp))

    # ---------- 대화 ----------
    def generate_response(
        self,
        scenario: Dict[str, Any],
        messages: List[Any],
        persona: Dict[str, Any],
        user_message: Optional[str] = None,
    ) -> Dict[str, str]:
        """페르소나의 다음 대사. user_message가 없으면 앞 대화를 자연스럽게 이어감"""
        try:
            prompt = self._build_response_prompt(scenario, messages, persona, user_message)
            data = self._generate_json(self.model, prompt, temperature=0.7, max_tokens=512)
            content = (data.get("content") or "").strip()
            if not content:
                raise ValueError("빈 응답")
            return {
                "content": content,
                "emotion": data.get("emotion") or NEUTRAL_EMOTION,
                "emotionReason": data.get("emotionReason") or "일반적인 대화 상황",
            }
        except Exception as e:
            log.exception("[GENAI] 페르소나 응답 생성 실패: persona=%s err=%s", persona.get("id"), e)
            return {
                "content": self.fallback_response(persona),
                "emotion": NEUTRAL_EMOTION,
                "emotionReason": "시스템 오류로 기본 응답 제공",
            }

    def _build_response_prompt(
        self,
        scenario: Dict[str, Any],
        messages: List[Any],
        persona: Dict[str, Any],
        user_message: Optional[str],
    ) -> str:
        recent = messages[-HISTORY_LIMIT:]
        history = "\n".join(
            f"{'사용자' if _text(m, 'sender') == 'user' else persona.get('name')}: {_text(m, 'message')[:100]}"
            for m in recent
        )
        history_block = f"\n이전 대화:\n{history}\n" if history else ""
        level = scenario.get("difficulty") or 2

        return f"""당신은 {persona.get('name')}({persona.get('role') or '팀원'}, {persona.get('department') or ''})입니다.

{ConversationCache.get_compact_scenario_context(scenario)}
{persona.get('mbtiContext') or ''}
성격: {persona.get('personality')}
대화 방식: {persona.get('responseStyle')}
입장: {persona.get('stance')}
목표: {persona.get('goal')}
난이도 지침: {DIFFICULTY_GUIDE.get(level, DIFFICULTY_GUIDE[2])}
{history_block}

사용자: {user_message or '앞서 이야기를 자연스럽게 이어가주세요'}

상황에 맞게 자연스럽게 2~4문장으로 답하세요. 반드시 다음 JSON 형식만 출력하세요:
{{"content": "대화 내용", "emotion": "기쁨|슬픔|분노|놀람|중립|걱정|만족|실망", "emotionReason": "감정 이유"}}"""

    @staticmethod
    def fallback_response(persona: Dict[str, Any]) -> str:
        mbti = (persona.get("mbti") or "").upper()
        template = _MBTI_FALLBACKS.get(mbti)
        if template:
            phrases = persona.get("keyPhrases") or ["솔직히 말하면"]
            return template.format(phrase=phrases[0])
        return f"{persona.get('name') or '담당자'}입니다. 시스템 오류가 발생했습니다. 잠시 후 다시 시도해주세요."

    # ---------- 피드백 ----------
    def generate_feedback(self, messages: List[Any], persona: Dict[str, Any]) -> Dict[str, Any]:
        """사용자 발언만 평가한 DetailedFeedback(dict). 발언이 없으면 모델 호출 없이 최하점"""
        user_messages = [m for m in messages if _text(m, "sender") == "user"]
        if not any(_text(m, "message").strip() for m in user_messages):
            log.info("[FEEDBACK] 사용자 발언 없음 - 모든 점수 1점")
            return self.no_input_feedback(persona)

        try:
            data = self._generate_json(
                self.feedback_model,
                self._build_feedback_prompt(messages, user_messages, persona),
                temperature=0.2,
                max_tokens=4096,
            )
        except Exception as e:
            log.exception("[FEEDBACK] 피드백 생성 실패, 기본값 사용: %s", e)
            data = {}

        return self.normalize_feedback(data, persona)

    def _build_feedback_prompt(self, messages: List[Any], user_messages: List[Any], persona: Dict[str, Any]) -> str:
        total_chars = sum(len(_text(m, "message")) for m in user_messages)
        return _FEEDBACK_PROMPT.format(
            name=persona.get("name"),
            role=persona.get("role") or "",
            user_text="\n".join(
                f"사용자 발언 {i + 1}: {_text(m, 'message')}" for i, m in enumerate(user_messages)
            ),
            full_text="\n".join(
                f"{'사용자' if _text(m, 'sender') == 'user' else persona.get('name')}: {_text(m, 'message')}"
                for m in messages
            ),
            total=len(messages),
            user_count=len(user_messages),
            avg_len=round(total_chars / len(user_messages)) if user_messages else 0,
            goals=", ".join(persona.get("goals") or ["목표 달성"]),
        )

    @staticmethod
    def normalize_feedback(data: Dict[str, Any], persona: Dict[str, Any]) -> Dict[str, Any]:
        """모델 출력 보정: 점수 1~5 clamp(기본 3), 종합점수 0~100"""
        raw_scores = data.get("scores") if isinstance(data.get("scores"), dict) else {}
        scores = {}
        for key in SCORE_KEYS:
            raw = raw_scores.get(key)
            try:
                scores[key] = 3 if raw is None else clamp(round_half_up(float(raw)), 1, 5)
            except (TypeError, ValueError, OverflowError):  # None 외 형식 오류, NaN/Infinity
                scores[key] = 3

        try:
            overall = clamp(round_half_up(float(data["overallScore"])), 0, 100)
        except (KeyError, TypeError, ValueError, OverflowError):
            overall = sum(scores.values()) * 4  # 5개 항목 x 5점 = 100점 환산

        return {
            "overallScore": overall,
            "scores": scores,
            "strengths": data.get("strengths") or list(_DEFAULT_STRENGTHS),
            "improvements": data.get("improvements") or list(_DEFAULT_IMPROVEMENTS),
            "nextSteps": data.get("nextSteps") or list(_DEFAULT_NEXT_STEPS),
            "summary": data.get("summary") or "전반적으로 무난한 대화였습니다. 지속적인 연습을 통해 발전할 수 있습니다.",
            "ranking": _RANKING,
            "behaviorGuides": data.get("behaviorGuides") or default_behavior_guides(persona),
            "conversationGuides": data.get("conversationGuides") or default_conversation_guides(persona),
            "developmentPlan": development_plan(overall),
        }

    @staticmethod
    def no_input_feedback(persona: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "overallScore": 20,
            "scores": {key: 1 for key in SCORE_KEYS},
            "strengths": ["평가할 사용자의 발언이 없습니다."],
            "improvements": list(_DEFAULT_IMPROVEMENTS),
            "nextSteps": list(_DEFAULT_NEXT_STEPS),
            "summary": (
                "사용자의 발언이 없어 커뮤니케이션 역량을 평가할 수 없습니다. "
                "대화에 전혀 참여하지 않았기 때문에 모든 평가 항목에서 최하점을 부여했습니다."
            ),
            "ranking": _RANKING,
            "behaviorGuides": default_behavior_guides(persona),
            "conversationGuides": default_conversation_guides(persona),
            "developmentPlan": development_plan(20),
        }


def default_behavior_guides(persona: Dict[str, Any]) -> List[Dict[str, str]]:
    name = persona.get("name") or "상대방"
    return [{
        "situation": f"{name}이(가) 우려나 반대 의견을 제기할 때",
        "action": "우려를 먼저 재진술해 인정한 뒤, 근거와 대안을 함께 제시하세요",
        "example": "말씀하신 일정 리스크 충분히 이해합니다. 그 부분을 줄이기 위해 두 가지 방안을 준비했습니다",
        "impact": "상대의 방어감을 낮추고 협력적인 논의로 전환",
    }]


def default_conversation_guides(persona: Dict[str, Any]) -> List[Dict[str, Any]]:
    name = persona.get("name") or "상대방"
    return [{
        "scenario": f"{name}과(와)의 의견 조율",
        "goodExample": "구체적인 데이터와 근거를 바탕으로 상대의 목표와 연결해 설명",
        "badExample": "막연한 추측이나 감정적 반응으로 대응",
        "keyPoints": ["사실 기반 소통", "상대 입장 확인", "다음 단계 합의"],
    }]


def development_plan(score: int) -> Dict[str, Any]:
    focus = "기본 커뮤니케이션 스킬 향상" if score < 60 else "강점 기반 설득력 심화"
    return {
        "shortTerm": [{
            "goal": focus,
            "actions": ["일일 대화 연습", "피드백 받기", "자기 성찰 시간 갖기"],
            "measurable": "주 3회 이상 연습, 피드백 점수 10% 향상",
        }],
        "mediumTerm": [{
            "goal": "상황별 대응 능력 개발",
            "actions": ["다양한 시나리오 연습", "전문가 조언 구하기", "실전 경험 쌓기"],
            "measurable": "월 2회 이상 새로운 시나리오 도전, 성공률 70% 이상",
        }],
        "longTerm": [{
            "goal": "전문적 커뮤니케이션 역량 구축",
            "actions": ["심화 교육 과정 수강", "멘토링 참여", "리더십 역할 수행"],
            "measurable": "6개월 내 고급 과정 수료, 팀 내 커뮤니케이션 담당 역할",
        }],
        "recommendedResources": [
            "효과적인 커뮤니케이션 기법 도서",
            "온라인 커뮤니케이션 강의",
            "전문가 멘토링 프로그램",
            "실전 시나리오 연습 플랫폼",
        ],
    }
