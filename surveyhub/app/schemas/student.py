# app/schemas/student.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from surveyhub.app.schemas.survey import CamelModel
from surveyhub.app.services.catalogue import DashboardEntry
from surveyhub.db.models import Visibility


class DashboardSurveyOut(CamelModel):
    id: str
    title: str
    description: str
    owner_id: str
    owner_name: Optional[str] = None
    access_type: Visibility
    is_public: bool
    created_at: datetime
    is_from_teacher: bool
    status: str
    progress: int
    answered_questions: int
    total_questions: int
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, e: DashboardEntry) -> "DashboardSurveyOut":
        return cls(
            id=e.survey.survey_id,
            title=e.survey.title,
            description=e.survey.description,
            owner_id=e.survey.owner_id,
            owner_name=e.owner_name,
            access_type=e.survey.visibility,
            is_public=e.survey.visibility == Visibility.public,
            created_at=e.created_at,
            is_from_teacher=e.from_teacher,
            status=e.status,
            progress=e.progress,
            answered_questions=e.answered_questions,
            total_questions=e.total_questions,
            submitted_at=e.submitted_at,
        )


class DashboardOut(CamelModel):
    success: bool = True
    data: List[DashboardSurveyOut] = Field(default_factory=list)
