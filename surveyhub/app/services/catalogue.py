"""Survey listings for browsing.

`list_visible` returns every survey a viewer may discover with its question
tree. `student_dashboard` adds, for one student, whether the survey comes
from a linked teacher and whether the student has already answered it.
"""
# app/services/catalogue.py
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from surveyhub.app.services.analytics import linked_teacher_ids, visible_to
from surveyhub.app.services.response_collector import ResponseCollector
from surveyhub.db.models import Question, Survey, User, UserRole
from surveyhub.db.models.survey import as_utc
from surveyhub.db.store import EntityStore


@dataclass
class DashboardEntry:
    survey: Survey
    owner_name: Optional[str]
    created_at: datetime
    from_teacher: bool
    total_questions: int
    answered_questions: int = 0
    submitted_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        # a response is submitted whole, so there is no partial state
        return "completed" if self.submitted_at else "open"

    @property
    def progress(self) -> int:
        if not self.total_questions:
            return 0
        return round(self.answered_questions * 100 / self.total_questions)


class SurveyCatalogue:
    def __init__(self, store: EntityStore):
        self.store = store
        self.collector = ResponseCollector(store)

    def list_visible(self, viewer_role: Optional[UserRole], viewer_id: Optional[str]) -> List[Survey]:
        """Surveys the viewer may discover, newest first, questions and choices loaded."""
        if viewer_id is None:
            viewer_role = None
        with self.store.read() as session:
            linked = linked_teacher_ids(session, viewer_id) if viewer_role == UserRole.student else set()
            return list(session.execute(
                select(Survey)
                .options(selectinload(Survey.questions).selectinload(Question.choices))
                .where(visible_to(viewer_role, viewer_id, linked))
                .order_by(Survey.created_at.desc(), Survey.survey_id)
            ).scalars().all())

    def student_dashboard(self, student_id: str) -> List[DashboardEntry]:
        """Surveys visible to a student: linked teachers' first, then newest first."""
        with self.store.read() as session:
            linked = linked_teacher_ids(session, student_id)
            rows = session.execute(
                select(Survey, User.name)
                .options(selectinload(Survey.questions))
                .outerjoin(User, Survey.owner_id == User.user_id)
                .where(visible_to(UserRole.student, student_id, linked))
            ).all()

        taken = self.collector.participation(student_id)

        entries = []
        for survey, owner_name in rows:
            submitted_at, answered = taken.get(survey.survey_id, (None, 0))
            entries.append(DashboardEntry(
                survey=survey,
                owner_name=owner_name,
                created_at=as_utc(survey.created_at),
                from_teacher=survey.owner_id in linked,
                total_questions=len(survey.questions),
                answered_questions=answered,
                submitted_at=submitted_at,
            ))
        entries.sort(key=lambda e: e.created_at, reverse=True)
        entries.sort(key=lambda e: not e.from_teacher)
        return entries
