from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from quizsmith.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Owner of a credit balance. Balance is kept in integer cents."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    credit_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class QuizHistory(Base):
    """One persisted quiz or clear-up."""
    __tablename__ = "quiz_histories"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    provenance: Mapped[str] = mapped_column(String(16), nullable=False)
    question_types: Mapped[list] = mapped_column(JSON, nullable=False)
    difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    question_count: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_charged: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    questions: Mapped[list] = mapped_column(JSON, nullable=False)
