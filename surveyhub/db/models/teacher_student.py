# db/models/teacher_student.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from surveyhub.db import Base
from surveyhub.db.models.survey import utcnow
import uuid


class TeacherStudent(Base):
    __tablename__ = "teacher_students"

    link_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id: Mapped[str] = mapped_column(String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    survey_id: Mapped[str | None] = mapped_column(String, ForeignKey("surveys.survey_id", ondelete="SET NULL"), nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    student = relationship("User", foreign_keys=[student_id])
    survey = relationship("Survey")

    __table_args__ = (
        UniqueConstraint("teacher_id", "student_id", name="uq_teacher_student"),
    )
