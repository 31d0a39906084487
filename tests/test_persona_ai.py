import json

import pytest

from trainer.ai.persona_ai import SCORE_KEYS, PersonaConversationAI


@pytest.fixture
def persona():
    return {
        "id": "kim-dev-lead",
        "name": "김태호",
        "role": "과장",
        "department": "개발팀",
        "personality": "사실과 절차를 중시",
        "responseStyle": "사실부터 정리",
        "goals": ["구체적인 근거 제시"],
        "keyPhrases": ["원칙적으로 보면"],
        "mbti": "ISTJ",
        "mbtiContext": "MBTI: ISTJ. 스타일: 사실과 절차를 중시",
        "stance": "품질 우선",
        "goal": "일주일 확보",
    }


@pytest.fixture
def scenario():
    return {
        "id": "s1",
        "title": "출시 지연",
        "context": {"situation": "결제 모듈 문제로 출시가 늦어질 위기"},
        "objectives": ["일정 합의"],
        "difficulty": 3,
    }


def _msg(sender, message):
    return {"sender": sender, "message": message, "timestamp": "2026-01-01T00:00:00Z"}


def test_generate_response_parses_model_json(persona_ai, fake_genai, scenario, persona):
    fake_genai.models.replies.append(
        '```json\n{"content": "데이터부터 봅시다.", "emotion": "걱정", "emotionReason": "일정 압박"}\n```'
    )
    result = persona_ai.generate_response(scenario, [], persona, "일정을 줄일 수 있을까요?")

    assert result == {"content": "데이터부터 봅시다.", "emotion": "걱정", "emotionReason": "일정 압박"}
    call = fake_genai.models.calls[0]
    assert call["model"] == "test-model"
    assert call["config"].response_mime_type == "application/json"
    assert "김태호(과장, 개발팀)" in call["contents"]
    assert "일정을 줄일 수 있을까요?" in call["contents"]


def test_generate_response_defaults_missing_emotion(persona_ai, fake_genai, scenario, persona):
    fake_genai.models.replies.append('{"content": "네."}')
    result = persona_ai.generate_response(scenario, [], persona, "안녕하세요")
    assert result["emotion"] == "중립"
    assert result["emotionReason"]


def test_prompt_uses_only_recent_history(persona_ai, fake_genai, scenario, persona):
    history = [_msg("user" if i % 2 else "ai", f"메시지-{i}번") for i in range(6)]
    persona_ai.generate_response(scenario, history, persona, None)

    prompt = fake_genai.models.calls[0]["contents"]
    assert "메시지-0번" not in prompt
    assert "메시지-1번" not in prompt
    assert "메시지-2번" in prompt and "메시지-5번" in prompt
    # 건너뛰기 턴은 대화를 이어가도록 요청
    assert "앞서 이야기를 자연스럽게 이어가주세요" in prompt


def test_generate_response_falls_back_on_client_error(persona_ai, fake_genai, scenario, persona):
    fake_genai.models.replies.append(RuntimeError("quota exceeded"))
    result = persona_ai.generate_response(scenario, [], persona, "안녕하세요")
    assert result["content"].startswith("원칙적으로 보면,")
    assert result["emotion"] == "중립"


def test_generate_response_falls_back_on_empty_content(persona_ai, fake_genai, scenario, persona):
    fake_genai.models.replies.append("모델이 JSON을 주지 않음")
    persona = {**persona, "mbti": None}
    result = persona_ai.generate_response(scenario, [], persona, "안녕하세요")
    assert result["content"] == "김태호입니다. 시스템 오류가 발생했습니다. 잠시 후 다시 시도해주세요."


def test_feedback_without_user_input_skips_model(persona_ai, fake_genai, persona):
    messages = [_msg("ai", "안녕하세요"), _msg("user", "   "), _msg("ai", "듣고 계신가요?")]
    feedback = persona_ai.generate_feedback(messages, persona)

    assert fake_genai.models.calls == []
    assert feedback["overallScore"] == 20
    assert feedback["scores"] == {key: 1 for key in SCORE_KEYS}
    assert set(feedback["developmentPlan"]) >= {"shortTerm", "mediumTerm", "longTerm", "recommendedResources"}


def test_feedback_scores_are_clamped(persona_ai, fake_genai, persona):
    fake_genai.models.replies.append(json.dumps({
        "overallScore": 150,
        "scores": {"clarityLogic": 9, "listeningEmpathy": 0, "appropriatenessAdaptability": "4"},
        "strengths": ["근거 제시가 명확함"],
        "summary": "좋은 대화",
    }))
    messages = [_msg("ai", "무슨 일이죠?"), _msg("user", "일정 조정이 필요한 이유를 데이터와 함께 설명드리겠습니다.")]
    feedback = persona_ai.generate_feedback(messages, persona)

    assert fake_genai.models.calls[0]["model"] == "test-feedback-model"
    assert feedback["overallScore"] == 100
    assert feedback["scores"] == {
        "clarityLogic": 5,
        "listeningEmpathy": 1,
        "appropriatenessAdaptability": 4,
        "persuasivenessImpact": 3,
        "strategicCommunication": 3,
    }
    assert feedback["strengths"] == ["근거 제시가 명확함"]
    assert feedback["summary"] == "좋은 대화"
    assert feedback["improvements"]  # 기본값
    assert feedback["behaviorGuides"][0]["situation"].startswith("김태호")


def test_feedback_overall_is_derived_when_missing(persona_ai, fake_genai, persona):
    fake_genai.models.replies.append(json.dumps({"scores": {key: 4 for key in SCORE_KEYS}}))
    feedback = persona_ai.generate_feedback([_msg("user", "설명드리겠습니다")], persona)
    assert feedback["overallScore"] == 80


def test_feedback_non_finite_numbers_fall_back(persona_ai, fake_genai, persona):
    # json.loads는 Infinity / NaN / 1e999 를 float로 받아들임
    fake_genai.models.replies.append(
        '{"overallScore": Infinity, "scores": {"clarityLogic": 1e999, "listeningEmpathy": NaN,'
        ' "appropriatenessAdaptability": 4, "persuasivenessImpact": 4, "strategicCommunication": -Infinity}}'
    )
    feedback = persona_ai.generate_feedback([_msg("user", "설명드리겠습니다")], persona)

    assert feedback["scores"] == {
        "clarityLogic": 3,
        "listeningEmpathy": 3,
        "appropriatenessAdaptability": 4,
        "persuasivenessImpact": 4,
        "strategicCommunication": 3,
    }
    assert feedback["overallScore"] == 68


def test_feedback_model_error_uses_neutral_defaults(persona_ai, fake_genai, persona):
    fake_genai.models.replies.append(RuntimeError("timeout"))
    feedback = persona_ai.generate_feedback([_msg("user", "설명드리겠습니다")], persona)
    assert feedback["scores"] == {key: 3 for key in SCORE_KEYS}
    assert feedback["overallScore"] == 60


def test_fallback_response_per_mbti():
    assert PersonaConversationAI.fallback_response({"mbti": "infp"}).startswith("아... 미안해요")
    assert PersonaConversationAI.fallback_response({}).startswith("담당자입니다.")
