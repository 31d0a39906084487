import uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey
from datetime import datetime, timezone
from ..db import Base

class Feedback(Base):
    __tablename__ = "feedbacks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversationId: Mapped[str] = mapped_column(ForeignKey("conversations.id"), nullable=False, unique=True)
    overallScore: Mapped[int] = mapped_column(Integer)                 # 0~100
    scores: Mapped[list] = mapped_column(JSON)                         # EvaluationScore 5개
    detailedFeedback: Mapped[dict] = mapped_column(JSON)
    createdAt: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    conversation = relationship("Conversation", back_populates="feedback")
