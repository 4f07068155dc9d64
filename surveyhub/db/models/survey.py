# db/models/survey.py
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, DateTime, Enum, ForeignKey
from surveyhub.db import Base
import enum
import uuid


class Visibility(str, enum.Enum):
    public = "public"
    students_only = "students_only"
    private = "private"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Survey(Base):
    __tablename__ = "surveys"

    survey_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[Visibility] = mapped_column(Enum(Visibility), default=Visibility.public, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    owner = relationship("User")
    # passive_deletes: rows go away through ON DELETE CASCADE in the database
    questions = relationship("Question", back_populates="survey", cascade="all, delete-orphan",
                             passive_deletes=True, order_by="Question.position")
    responses = relationship("Response", back_populates="survey", cascade="all, delete-orphan",
                             passive_deletes=True)
