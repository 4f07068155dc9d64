# app/schemas/roster.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from surveyhub.app.schemas.survey import CamelModel
from surveyhub.app.services.roster import LinkedStudent


class AddBySurveyIn(CamelModel):
    survey_id: str = Field(min_length=1)


class LinkedStudentOut(CamelModel):
    id: str
    student_id: str
    name: str
    email: Optional[str] = None
    added_at: datetime
    survey_id: Optional[str] = None
    survey_title: Optional[str] = None

    @classmethod
    def from_link(cls, s: LinkedStudent) -> "LinkedStudentOut":
        return cls(
            id=s.link_id,
            student_id=s.student_id,
            name=s.name,
            email=s.email,
            added_at=s.added_at,
            survey_id=s.survey_id,
            survey_title=s.survey_title,
        )


class StudentListOut(CamelModel):
    success: bool = True
    data: List[LinkedStudentOut] = Field(default_factory=list)
