import uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, JSON, Text
from datetime import datetime, timezone
from ..db import Base

def _uuid() -> str:
    return str(uuid.uuid4())

class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    scenarioId: Mapped[str] = mapped_column(String(128))
    personaId: Mapped[str | None] = mapped_column(String(128), nullable=True)
    scenarioName: Mapped[str] = mapped_column(String(255))
    messages: Mapped[list] = mapped_column(JSON, default=list)          # ConversationMessage 배열
    turnCount: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default="active")   # active/completed
    mode: Mapped[str] = mapped_column(String(32), default="text")       # text/tts/realtime_voice
    difficulty: Mapped[int] = mapped_column(Integer, default=2)

    # 전략 대화(여러 페르소나 순차 대화)용
    personaStatuses: Mapped[list] = mapped_column(JSON, default=list)
    personaSelections: Mapped[list] = mapped_column(JSON, default=list)
    strategyChoices: Mapped[list] = mapped_column(JSON, default=list)
    sequenceAnalysis: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    strategyReflection: Mapped[str | None] = mapped_column(Text, nullable=True)
    conversationOrder: Mapped[list] = mapped_column(JSON, default=list)
    conversationType: Mapped[str] = mapped_column(String(32), default="single")

    createdAt: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    completedAt: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    feedback = relationship("Feedback", back_populates="conversation", uselist=False,
                            cascade="all, delete-orphan")
