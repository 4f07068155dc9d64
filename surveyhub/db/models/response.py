# db/models/response.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from surveyhub.db import Base
from surveyhub.db.models.survey import utcnow
import enum
import uuid


class AnswerKind(str, enum.Enum):
    text = "text"
    choice = "choice"
    multi_choice = "multi_choice"
    rating = "rating"


class Response(Base):
    __tablename__ = "responses"

    response_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    survey_id: Mapped[str] = mapped_column(String, ForeignKey("surveys.survey_id", ondelete="CASCADE"), nullable=False, index=True)
    respondent_id: Mapped[str] = mapped_column(String, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)

    survey = relationship("Survey", back_populates="responses")
    answers = relationship("Answer", back_populates="response", cascade="all, delete-orphan", passive_deletes=True)

    # at most one response per respondent and survey
    __table_args__ = (
        UniqueConstraint("survey_id", "respondent_id", name="uq_response_respondent"),
    )


class Answer(Base):
    __tablename__ = "answers"

    answer_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    response_id: Mapped[str] = mapped_column(String, ForeignKey("responses.response_id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(String, ForeignKey("questions.question_id", ondelete="CASCADE"), nullable=False, index=True)
    kind: Mapped[AnswerKind] = mapped_column(Enum(AnswerKind), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    response = relationship("Response", back_populates="answers")
    question = relationship("Question", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("response_id", "question_id", name="uq_answer_question"),
    )
