import pytest

from trainer.services.conversation_cache import ConversationCache
from trainer.services.scenario_service import ScenarioRepository, mbti_of


def test_repository_lists_fixture_scenarios(repository):
    scenarios = repository.list_scenarios()
    assert [s["id"] for s in scenarios] == ["app-delay-crisis"]
    assert repository.get_scenario("nope") is None


def test_repository_skips_broken_files(tmp_path):
    (tmp_path / "good.json").write_text('{"id": "good", "title": "ok", "personas": []}', encoding="utf-8")
    (tmp_path / "broken.json").write_text('{"id": ', encoding="utf-8")
    (tmp_path / "list.json").write_text("[1, 2]", encoding="utf-8")

    repo = ScenarioRepository(str(tmp_path), str(tmp_path))
    assert [s["id"] for s in repo.list_scenarios()] == ["good"]


def test_repository_missing_directory(tmp_path):
    repo = ScenarioRepository(str(tmp_path / "missing"), str(tmp_path / "missing"))
    assert repo.list_scenarios() == []
    assert repo.get_mbti_persona("istj") is None


def test_mbti_of_prefers_field_then_persona_ref():
    assert mbti_of({"mbti": "ENTJ", "personaRef": "istj.json"}) == "entj"
    assert mbti_of({"personaRef": "istj.json"}) == "istj"
    assert mbti_of({}) == ""


def test_conversation_data_builds_persona(cache):
    data = cache.get_conversation_data("app-delay-crisis", "kim-dev-lead")
    persona = data["persona"]

    assert data["scenario"]["id"] == "app-delay-crisis"
    assert data["mbtiPersona"]["mbti"] == "ISTJ"
    assert persona["name"] == "김태호"
    assert persona["role"] == "과장"
    assert persona["personality"] == "사실과 절차를 중시하며 간결하고 정확하게 말함"
    assert persona["goals"] == ["구체적인 근거 제시", "절차와 일정의 명확한 합의"]
    assert persona["background"] == "책임감, 정확성, 신뢰"
    assert persona["keyPhrases"][0] == "원칙적으로 보면"
    assert persona["mbtiContext"].startswith("MBTI: ISTJ.")
    assert persona["stance"] == "품질 문제가 해결되기 전에는 출시할 수 없다"


def test_persona_defaults_without_mbti_profile(tmp_path, repository):
    repo = ScenarioRepository(str(repository.scenarios_dir), str(tmp_path))
    persona = ConversationCache(repo).get_conversation_data("app-delay-crisis", "kim-dev-lead")["persona"]

    assert persona["personality"] == "균형 잡힌 의사소통"
    assert persona["responseStyle"] == "상황에 맞는 방식으로 대화 시작"
    assert persona["goals"] == ["목표 달성"]
    assert persona["background"] == "전문성"
    assert persona["mbti"] == "ISTJ"
    assert persona["mbtiContext"] == ""


def test_unknown_scenario_or_persona_raises(cache):
    with pytest.raises(LookupError):
        cache.get_conversation_data("nope", "kim-dev-lead")
    with pytest.raises(LookupError):
        cache.get_conversation_data("app-delay-crisis", "nobody")


def test_cache_stats_and_clearing(cache):
    cache.get_conversation_data("app-delay-crisis", "kim-dev-lead")
    cache.get_conversation_data("app-delay-crisis", "kim-dev-lead")
    cache.get_conversation_data("app-delay-crisis", "lee-marketing")
    assert cache.get_cache_stats() == {"scenarios": 1, "personas": 2, "mbti": 2}

    cache.clear_conversation_cache("app-delay-crisis", "kim-dev-lead")
    assert cache.get_cache_stats() == {"scenarios": 0, "personas": 1, "mbti": 2}

    cache.clear_cache()
    assert cache.get_cache_stats() == {"scenarios": 0, "personas": 0, "mbti": 0}


def test_clear_conversation_cache_matches_exact_persona_id(cache):
    cache._build_persona({"id": "kim"}, {"mbti": "ISTJ"})
    cache._build_persona({"id": "kim"}, None)
    cache._build_persona({"id": "kim_lee"}, {"mbti": "ENFJ"})

    cache.clear_conversation_cache("app-delay-crisis", "kim")

    assert list(cache._personas) == ["kim_lee_ENFJ"]


def test_cached_persona_is_reused(cache):
    first = cache.get_conversation_data("app-delay-crisis", "kim-dev-lead")["persona"]
    second = cache.get_conversation_data("app-delay-crisis", "kim-dev-lead")["persona"]
    assert first is second


def test_compact_contexts():
    scenario = {
        "context": {"situation": "가" * 80},
        "objectives": ["첫 목표", "둘째 목표", "셋째 목표"],
    }
    text = ConversationCache.get_compact_scenario_context(scenario)
    assert text == f"상황: {'가' * 50}. 목표: 첫 목표, 둘째 목표"
    assert ConversationCache.get_compact_scenario_context({}) == "상황: 업무 상황. 목표: 문제 해결"

    assert ConversationCache.get_compact_mbti_context(None) == ""
    assert ConversationCache.get_compact_mbti_context(
        {"mbti": "ENTJ", "communication_style": "결론부터"}
    ) == "MBTI: ENTJ. 스타일: 결론부터"
