# trainer/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field

class Settings(BaseSettings):
    db_url: str = "sqlite:///./trainer.db"
    allowed_origins: str = "http://localhost:5173"

    # --- Gemini ---
    gemini_api_key: str | None = None
    gcp_project_id: str | None = None   # 있으면 Vertex 경유
    gcp_location: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    feedback_model: str = "gemini-2.5-pro"
    tts_model: str = "gemini-2.5-flash-preview-tts"   # tts 모드 음성 합성

    # --- Google Cloud Storage ---
    gcs_bucket_name: str | None = None  # GCS_BUCKET_NAME
    gcs_url_ttl: int = 3600             # 서명 URL 유효시간(초)

    # --- 시나리오 / 대화 ---
    scenarios_dir: str = "scenarios"
    personas_dir: str = "personas"
    max_turns: int = 3                  # 이 턴 수에 도달하면 대화 완료

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
    )

    @computed_field(return_type=list[str])
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

settings = Settings()
