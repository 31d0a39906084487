from pydantic import BaseModel, Field

class TtsRequest(BaseModel):
    text: str = Field(min_length=1, max_length=2000)
    scenarioId: str = Field(min_length=1)
    personaId: str | None = None   # 비우면 성별 기본값(male)
    emotion: str = "중립"

class TtsMetadata(BaseModel):
    scenarioId: str
    personaId: str | None = None
    gender: str
    voice: str
    emotion: str
    textLength: int
    provider: str

class TtsResponse(BaseModel):
    success: bool = True
    audio: str          # base64 WAV
    metadata: TtsMetadata
