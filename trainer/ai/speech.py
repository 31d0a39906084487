# trainer/ai/speech.py
"""
페르소나 대사 음성 합성 (tts 모드).
Gemini TTS 모델로 24kHz 16bit mono PCM을 받아 WAV로 감싼다.
"""
import io
import logging
import re
import wave
import zlib
from typing import Any, Dict, List, Optional

from google.genai import types

from ..config import settings
from .gemini_client import build_client

log = logging.getLogger(__name__)

SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2  # 16bit

# Gemini 사전 정의 음성
VOICES: Dict[str, List[str]] = {
    "male": ["Charon", "Orus", "Puck", "Fenrir"],
    "female": ["Kore", "Aoede", "Leda", "Zephyr"],
}

EMOTION_STYLES = {
    "기쁨": "밝고 즐거운 목소리로",
    "슬픔": "가라앉은 목소리로 천천히",
    "분노": "단호하고 언짢은 목소리로",
    "놀람": "놀란 목소리로",
    "걱정": "걱정스러운 목소리로",
    "만족": "여유 있고 만족스러운 목소리로",
    "실망": "실망한 목소리로",
}


class SpeechSynthesisError(RuntimeError):
    pass


def clean_text(text: str) -> str:
    """HTML 태그, 마크다운 기호 제거"""
    text = re.sub(r"<[^>]*>", "", text or "")
    return re.sub(r"[*#_`]", "", text).strip()


def pick_voice(persona_id: str, gender: str) -> str:
    """같은 페르소나는 항상 같은 목소리"""
    voices = VOICES.get(gender) or VOICES["male"]
    return voices[zlib.crc32(persona_id.encode("utf-8")) % len(voices)]


def pcm_to_wav(pcm: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def _audio_bytes(resp: Any) -> bytes:
    for cand in getattr(resp, "candidates", None) or []:
        content = getattr(cand, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return inline.data
    return b""


class GeminiSpeechSynthesizer:
    provider = "gemini"

    def __init__(self, client=None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.tts_model

    @property
    def client(self):
        if self._client is None:
            self._client = build_client()
        return self._client

    def is_configured(self) -> bool:
        return self._client is not None or bool(settings.gcp_project_id or settings.gemini_api_key)

    def synthesize(self, text: str, voice: str, emotion: str = "중립") -> bytes:
        """WAV 바이트 반환. 모델 오류/빈 오디오는 SpeechSynthesisError"""
        style = EMOTION_STYLES.get(emotion)
        prompt = f"다음 문장을 {style} 읽어주세요: {text}" if style else text
        try:
            resp = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                        ),
                    ),
                ),
            )
        except Exception as e:
            log.exception("[TTS] 음성 생성 실패: voice=%s", voice)
            raise SpeechSynthesisError(f"TTS 생성 실패: {e}") from e

        pcm = _audio_bytes(resp)
        if not pcm:
            raise SpeechSynthesisError("TTS 응답에 오디오가 없습니다")
        log.info("[TTS] voice=%s emotion=%s chars=%d bytes=%d", voice, emotion, len(text), len(pcm))
        return pcm_to_wav(pcm)
