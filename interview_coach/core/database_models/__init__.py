from datetime import UTC, date, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Engine,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models with proper typing support."""

    pass


def enable_sqlite_foreign_keys(engine: Engine):
    """Enable foreign key enforcement for SQLite connections on an engine."""

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
        if "sqlite" in str(dbapi_connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()


class UserTable(Base):
    """Candidates using the coach. Identity is owned by the upstream auth gateway."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    # Optional: the gateway only guarantees an id
    email: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    # Persisted difficulty state, adjusted after each completed question
    current_difficulty: Mapped[float] = mapped_column(Float, default=5.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    subscription: Mapped[Optional["SubscriptionTable"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    results: Mapped[list["QuestionResultTable"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", order_by="QuestionResultTable.seq"
    )

    __table_args__ = (
        Index("ix_users_email", "email"),
        CheckConstraint("current_difficulty >= 1 AND current_difficulty <= 10", name="ck_users_difficulty_range"),
    )


class SubscriptionTable(Base):
    """One subscription per user: a free trial or a paid plan."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    tier: Mapped[str] = mapped_column(String, default="trial")  # 'trial', 'pro'
    status: Mapped[str] = mapped_column(String, default="trial")  # 'trial', 'active', 'canceled', 'expired', 'past_due'
    trial_end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    user: Mapped["UserTable"] = relationship(back_populates="subscription")

    __table_args__ = (
        Index("ix_subscriptions_status", "status"),
        CheckConstraint(
            "status IN ('trial', 'active', 'canceled', 'expired', 'past_due')", name="ck_subscriptions_status"
        ),
    )


class PromptUsageTable(Base):
    """Per-user, per-day prompt counter. Only ever incremented by a guarded UPDATE."""

    __tablename__ = "prompt_usage"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    usage_date: Mapped[date] = mapped_column(Date)
    prompt_count: Mapped[int] = mapped_column(Integer, default=0)
    prompt_limit: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        UniqueConstraint("user_id", "usage_date", name="uq_prompt_usage_user_date"),
        CheckConstraint("prompt_count >= 0", name="ck_prompt_usage_count_non_negative"),
        Index("ix_prompt_usage_user_date", "user_id", "usage_date"),
    )


class QuestionResultTable(Base):
    """Append-only history of answered questions."""

    __tablename__ = "question_results"

    # Autoincrement key gives a strict insertion order even when timestamps tie
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    question_id: Mapped[str | None] = mapped_column(String, nullable=True)
    difficulty: Mapped[float] = mapped_column(Float)
    was_correct: Mapped[bool] = mapped_column(default=False)
    time_spent_seconds: Mapped[float] = mapped_column(Float)
    confidence_score: Mapped[float] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))

    user: Mapped["UserTable"] = relationship(back_populates="results")

    __table_args__ = (Index("ix_question_results_user_seq", "user_id", "seq"),)


__all__ = [
    "Base",
    "UserTable",
    "SubscriptionTable",
    "PromptUsageTable",
    "QuestionResultTable",
    "enable_sqlite_foreign_keys",
]
