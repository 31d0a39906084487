import os
from pathlib import Path
from types import SimpleNamespace

ROOT = Path(__file__).resolve().parent.parent
SCENARIOS_DIR = ROOT / "scenarios"
PERSONAS_DIR = ROOT / "personas"

# trainer 모듈 import 전에 설정되어야 함
os.environ["DB_URL"] = "sqlite://"
os.environ["SCENARIOS_DIR"] = str(SCENARIOS_DIR)
os.environ["PERSONAS_DIR"] = str(PERSONAS_DIR)
os.environ.pop("GCS_BUCKET_NAME", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trainer.ai.persona_ai import PersonaConversationAI
from trainer.db import Base, get_db
from trainer.deps import get_conversation_cache, get_persona_ai
from trainer.main import app
from trainer.services.conversation_cache import ConversationCache
from trainer.services.scenario_service import ScenarioRepository

DEFAULT_REPLY = '{"content": "네, 말씀하세요. 어떤 일로 오셨나요?", "emotion": "중립", "emotionReason": "대화 시작"}'


class FakeModels:
    """google.genai Client.models 대역. replies를 순서대로 돌려주고, 비면 DEFAULT_REPLY"""

    def __init__(self):
        self.replies = []
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        reply = self.replies.pop(0) if self.replies else DEFAULT_REPLY
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply, candidates=[])


class FakeGenAIClient:
    def __init__(self):
        self.models = FakeModels()


@pytest.fixture
def fake_genai():
    return FakeGenAIClient()


@pytest.fixture
def persona_ai(fake_genai):
    return PersonaConversationAI(client=fake_genai, model="test-model", feedback_model="test-feedback-model")


@pytest.fixture
def repository():
    return ScenarioRepository(str(SCENARIOS_DIR), str(PERSONAS_DIR))


@pytest.fixture
def cache(repository):
    return ConversationCache(repository)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine, persona_ai, cache):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def _get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_persona_ai] = lambda: persona_ai
    app.dependency_overrides[get_conversation_cache] = lambda: cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def conversation(client):
    """텍스트 모드로 만든 대화 (첫 AI 인사 포함)"""
    resp = client.post("/api/conversations", json={
        "scenarioId": "app-delay-crisis",
        "personaId": "kim-dev-lead",
        "scenarioName": "모바일 앱 출시 지연 위기",
    })
    assert resp.status_code == 200, resp.text
    return resp.json()
