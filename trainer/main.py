# trainer/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import Base, engine
from . import models  # noqa: F401  (테이블 등록)
from .routers import conversations, feedback, media, scenarios, system, tts

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# DB 모델 자동생성
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Persona Trainer API")

# CORS: 프론트 로컬 개발 주소 허용
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scenarios.router)
app.include_router(conversations.router)
app.include_router(feedback.router)
app.include_router(media.router)
app.include_router(system.router)
app.include_router(tts.router)


@app.get("/health")
def health():
    return {"status": "ok", "service": "Persona Trainer API"}
