# app/schemas/response.py
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import Field

from surveyhub.app.schemas.survey import CamelModel


class AnswerIn(CamelModel):
    question_id: str = ""
    value: Any = None


class SubmitResponseIn(CamelModel):
    respondent_id: Optional[str] = None
    answers: List[AnswerIn] = Field(default_factory=list)


class AnswerOut(CamelModel):
    question_id: str
    value: Union[int, List[str], str]


class ResponseOut(CamelModel):
    id: str
    survey_id: str
    respondent_id: str
    submitted_at: datetime
    answers: List[AnswerOut] = Field(default_factory=list)


class ResolvedAnswerOut(AnswerOut):
    question_text: str
    question_type: str


class ResponseDetailOut(CamelModel):
    id: str
    survey_id: str
    respondent_id: str
    respondent_name: Optional[str] = None
    submitted_at: datetime
    answers: List[ResolvedAnswerOut] = Field(default_factory=list)


class ParticipationOut(CamelModel):
    has_taken: bool
    submitted_at: Optional[datetime] = None
