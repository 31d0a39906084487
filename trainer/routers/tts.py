# trainer/routers/tts.py
import base64

from fastapi import APIRouter, Depends, HTTPException

from ..ai.speech import VOICES, GeminiSpeechSynthesizer, SpeechSynthesisError, clean_text, pick_voice
from ..deps import get_conversation_cache, get_speech_synthesizer
from ..schemas.tts import TtsMetadata, TtsRequest, TtsResponse
from ..services.conversation_cache import ConversationCache

router = APIRouter(prefix="/api/tts", tags=["tts"])


def _persona_gender(cache: ConversationCache, scenario_id: str, persona_id: str | None) -> str:
    try:
        scenario = cache.get_scenario(scenario_id)
    except LookupError as e:
        raise HTTPException(404, str(e))
    for p in scenario.get("personas") or []:
        if p.get("id") == persona_id:
            return "female" if p.get("gender") == "female" else "male"
    return "male"


@router.post("/generate", response_model=TtsResponse)
def generate_speech_api(
    body: TtsRequest,
    cache: ConversationCache = Depends(get_conversation_cache),
    tts: GeminiSpeechSynthesizer = Depends(get_speech_synthesizer),
):
    text = clean_text(body.text)
    if not text:
        raise HTTPException(400, "유효한 텍스트가 없습니다.")
    if not tts.is_configured():
        raise HTTPException(503, "TTS provider is not configured")

    gender = _persona_gender(cache, body.scenarioId, body.personaId)
    voice = pick_voice(body.personaId or body.scenarioId, gender)
    try:
        audio = tts.synthesize(text, voice, body.emotion)
    except SpeechSynthesisError as e:
        raise HTTPException(502, str(e))

    return TtsResponse(
        audio=base64.b64encode(audio).decode("ascii"),
        metadata=TtsMetadata(
            scenarioId=body.scenarioId,
            personaId=body.personaId,
            gender=gender,
            voice=voice,
            emotion=body.emotion,
            textLength=len(text),
            provider=tts.provider,
        ),
    )


@router.get("/voices")
def list_voices_api(tts: GeminiSpeechSynthesizer = Depends(get_speech_synthesizer)):
    return {"provider": tts.provider, "voices": VOICES}


@router.get("/health")
def tts_health_api(tts: GeminiSpeechSynthesizer = Depends(get_speech_synthesizer)):
    configured = tts.is_configured()
    return {
        tts.provider: {
            "available": configured,
            "status": "configured" if configured else "not_configured",
            "model": tts.model,
        },
        # 서버 TTS가 없으면 클라이언트가 브라우저 음성 합성으로 대체
        "webSpeech": {"available": True, "status": "browser_dependent"},
    }
