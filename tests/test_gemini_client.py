from types import SimpleNamespace

import pytest

from trainer.ai import gemini_client
from trainer.ai.gemini_client import build_client, extract_json, lenient_json_loads, response_text
from trainer.config import settings


def test_extract_json_from_code_fence():
    text = '설명입니다\n```json\n{"a": 1}\n```\n끝'
    assert extract_json(text) == '{"a": 1}'


def test_extract_json_from_surrounding_noise():
    assert extract_json('결과: {"a": {"b": 2}} 입니다') == '{"a": {"b": 2}}'
    assert extract_json("") == ""


def test_lenient_json_loads_repairs_common_mistakes():
    assert lenient_json_loads('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}
    assert lenient_json_loads('{"a": {"b": 1}') == {"a": {"b": 1}}


@pytest.mark.parametrize("text", ["", "그냥 텍스트", "[1, 2, 3]", '{"a": '])
def test_lenient_json_loads_gives_empty_dict_when_unrecoverable(text):
    assert lenient_json_loads(text) == {}


def test_response_text_falls_back_to_candidate_parts():
    part = SimpleNamespace(text='{"ok": ')
    part2 = SimpleNamespace(text="true}")
    resp = SimpleNamespace(text=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part, part2]))])
    assert response_text(resp) == '{"ok": true}'
    assert response_text(SimpleNamespace(text="  hi  ")) == "hi"


class _RecordingClient:
    def __init__(self, **kwargs):
        self.kwargs = kwargs


def test_build_client_prefers_vertex(monkeypatch):
    monkeypatch.setattr(gemini_client.genai, "Client", _RecordingClient)
    monkeypatch.setattr(settings, "gcp_project_id", "demo-project")
    monkeypatch.setattr(settings, "gcp_location", None)
    monkeypatch.setattr(settings, "gemini_api_key", "key")

    client = build_client()
    assert client.kwargs == {"vertexai": True, "project": "demo-project", "location": "us-central1"}


def test_build_client_with_api_key(monkeypatch):
    monkeypatch.setattr(gemini_client.genai, "Client", _RecordingClient)
    monkeypatch.setattr(settings, "gcp_project_id", None)
    monkeypatch.setattr(settings, "gemini_api_key", "key")
    assert build_client().kwargs == {"api_key": "key"}


def test_build_client_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "gcp_project_id", None)
    monkeypatch.setattr(settings, "gemini_api_key", None)
    with pytest.raises(RuntimeError):
        build_client()
