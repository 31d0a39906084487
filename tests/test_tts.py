import base64
import io
import wave
from types import SimpleNamespace

import pytest

from trainer.ai.speech import (
    SAMPLE_RATE,
    VOICES,
    GeminiSpeechSynthesizer,
    SpeechSynthesisError,
    clean_text,
    pcm_to_wav,
    pick_voice,
)
from trainer.config import settings
from trainer.deps import get_speech_synthesizer
from trainer.main import app

PCM = b"\x00\x01" * 240  # 10ms


class FakeAudioModels:
    def __init__(self, pcm=PCM, error=None):
        self.pcm = pcm
        self.error = error
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        part = SimpleNamespace(inline_data=SimpleNamespace(data=self.pcm, mime_type="audio/L16;rate=24000"))
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def _synthesizer(**kwargs):
    models = FakeAudioModels(**kwargs)
    return GeminiSpeechSynthesizer(client=SimpleNamespace(models=models), model="test-tts-model"), models


@pytest.fixture
def tts(client):
    synth, models = _synthesizer()
    app.dependency_overrides[get_speech_synthesizer] = lambda: synth
    return models


def test_clean_text_strips_markup():
    assert clean_text("<b>안녕하세요</b> **중요**한 _일정_ `#공유`") == "안녕하세요 중요한 일정 공유"
    assert clean_text("<br/> ** ") == ""


def test_pick_voice_is_stable_per_persona():
    assert pick_voice("lee-marketing", "female") == pick_voice("lee-marketing", "female")
    assert pick_voice("lee-marketing", "female") in VOICES["female"]
    assert pick_voice("kim-dev-lead", "unknown") in VOICES["male"]


def test_pcm_to_wav_header():
    with wave.open(io.BytesIO(pcm_to_wav(PCM)), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == SAMPLE_RATE
        assert wf.readframes(wf.getnframes()) == PCM


def test_synthesize_sends_voice_and_emotion_style():
    synth, models = _synthesizer()
    audio = synth.synthesize("일정을 다시 봐야겠네요", "Kore", "걱정")

    assert audio.startswith(b"RIFF")
    call = models.calls[0]
    assert call["model"] == "test-tts-model"
    assert "걱정스러운 목소리로" in call["contents"]
    assert call["config"].response_modalities == ["AUDIO"]
    assert call["config"].speech_config.voice_config.prebuilt_voice_config.voice_name == "Kore"


def test_synthesize_neutral_sends_plain_text():
    synth, models = _synthesizer()
    synth.synthesize("네, 알겠습니다", "Charon")
    assert models.calls[0]["contents"] == "네, 알겠습니다"


@pytest.mark.parametrize("kwargs", [{"error": RuntimeError("quota")}, {"pcm": b""}])
def test_synthesize_errors(kwargs):
    synth, _ = _synthesizer(**kwargs)
    with pytest.raises(SpeechSynthesisError):
        synth.synthesize("안녕하세요", "Kore")


def test_generate_api_returns_base64_wav(client, tts):
    resp = client.post("/api/tts/generate", json={
        "text": "<p>마케팅 일정은 **이미** 확정됐어요.</p>",
        "scenarioId": "app-delay-crisis",
        "personaId": "lee-marketing",
        "emotion": "실망",
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()

    assert body["success"] is True
    assert base64.b64decode(body["audio"]).startswith(b"RIFF")
    meta = body["metadata"]
    assert meta["gender"] == "female"
    assert meta["voice"] in VOICES["female"]
    assert meta["emotion"] == "실망"
    assert meta["textLength"] == len("마케팅 일정은 이미 확정됐어요.")
    assert meta["provider"] == "gemini"


def test_generate_api_defaults_to_male_voice(client, tts):
    body = client.post("/api/tts/generate", json={"text": "안녕하세요", "scenarioId": "app-delay-crisis"}).json()
    assert body["metadata"]["gender"] == "male"
    assert body["metadata"]["voice"] in VOICES["male"]


def test_generate_api_rejects_markup_only_text(client, tts):
    resp = client.post("/api/tts/generate", json={"text": "<br/>**", "scenarioId": "app-delay-crisis"})
    assert resp.status_code == 400
    assert tts.calls == []


def test_generate_api_unknown_scenario(client, tts):
    resp = client.post("/api/tts/generate", json={"text": "안녕하세요", "scenarioId": "nope"})
    assert resp.status_code == 404


def test_generate_api_upstream_error(client):
    synth, _ = _synthesizer(error=RuntimeError("quota"))
    app.dependency_overrides[get_speech_synthesizer] = lambda: synth
    resp = client.post("/api/tts/generate", json={"text": "안녕하세요", "scenarioId": "app-delay-crisis"})
    assert resp.status_code == 502


def test_voices_and_health(client, tts):
    assert client.get("/api/tts/voices").json() == {"provider": "gemini", "voices": VOICES}

    health = client.get("/api/tts/health").json()
    assert health["gemini"] == {"available": True, "status": "configured", "model": "test-tts-model"}
    assert health["webSpeech"]["status"] == "browser_dependent"


def test_not_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "gcp_project_id", None)
    app.dependency_overrides[get_speech_synthesizer] = lambda: GeminiSpeechSynthesizer()

    assert client.get("/api/tts/health").json()["gemini"]["status"] == "not_configured"
    resp = client.post("/api/tts/generate", json={"text": "안녕하세요", "scenarioId": "app-delay-crisis"})
    assert resp.status_code == 503
