"""Teacher-student links.

Links are created automatically when a student answers a teacher's survey;
these operations let the teacher inspect and adjust the list.
"""
# app/services/roster.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select

from surveyhub.app.core.errors import NotFoundError
from surveyhub.db.models import Response, Survey, TeacherStudent, User, UserRole
from surveyhub.db.models.survey import as_utc
from surveyhub.db.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class LinkedStudent:
    link_id: str
    student_id: str
    name: str
    email: Optional[str]
    added_at: datetime
    survey_id: Optional[str]
    survey_title: Optional[str] = None


class Roster:
    def __init__(self, store: EntityStore):
        self.store = store

    def list_students(self, teacher_id: str) -> List[LinkedStudent]:
        with self.store.read() as session:
            rows = session.execute(
                select(TeacherStudent, User, Survey.title)
                .join(User, TeacherStudent.student_id == User.user_id)
                .outerjoin(Survey, TeacherStudent.survey_id == Survey.survey_id)
                .where(TeacherStudent.teacher_id == teacher_id)
                .order_by(User.name)
            ).all()
            return [
                LinkedStudent(
                    link_id=link.link_id,
                    student_id=student.user_id,
                    name=student.name,
                    email=student.email,
                    added_at=as_utc(link.added_at),
                    survey_id=link.survey_id,
                    survey_title=title,
                )
                for link, student, title in rows
            ]

    def remove_student(self, teacher_id: str, student_id: str) -> None:
        """Raises NotFoundError if the student is not linked to this teacher."""
        with self.store.unit_of_work() as session:
            result = session.execute(
                delete(TeacherStudent).where(
                    TeacherStudent.teacher_id == teacher_id, TeacherStudent.student_id == student_id
                )
            )
            if result.rowcount == 0:
                raise NotFoundError("Student not linked to this teacher")
        logger.info("Unlinked student %s from teacher %s", student_id, teacher_id)

    def add_participants(self, teacher_id: str, survey_id: str) -> List[LinkedStudent]:
        """Link every student who answered an owned survey and is not linked yet.

        Raises:
            NotFoundError: The survey is absent or owned by someone else.
        """
        with self.store.unit_of_work() as session:
            survey = session.execute(
                select(Survey).where(Survey.survey_id == survey_id, Survey.owner_id == teacher_id)
            ).scalar_one_or_none()
            if survey is None:
                raise NotFoundError("Survey not found or not owned by you")

            participants = session.execute(
                select(User)
                .join(Response, Response.respondent_id == User.user_id)
                .where(Response.survey_id == survey_id, User.role == UserRole.student)
                .distinct()
            ).scalars().all()
            already = set(session.execute(
                select(TeacherStudent.student_id).where(TeacherStudent.teacher_id == teacher_id)
            ).scalars().all())

            added: List[LinkedStudent] = []
            for student in participants:
                if student.user_id in already:
                    continue
                link = TeacherStudent(teacher_id=teacher_id, student_id=student.user_id, survey_id=survey_id)
                session.add(link)
                session.flush()
                added.append(LinkedStudent(
                    link_id=link.link_id,
                    student_id=student.user_id,
                    name=student.name,
                    email=student.email,
                    added_at=as_utc(link.added_at),
                    survey_id=survey_id,
                    survey_title=survey.title,
                ))

        logger.info("Linked %d student(s) to teacher %s from survey %s", len(added), teacher_id, survey_id)
        return added
