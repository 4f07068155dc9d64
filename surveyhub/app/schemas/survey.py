"""Pydantic schemes for survey authoring.

Input schemes are deliberately lenient: blank or missing fields are reported
by the write coordinator together with their position in the payload.
"""
# app/schemas/survey.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from surveyhub.db.models import Survey, Question, Visibility
from surveyhub.db.models.survey import as_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChoiceIn(CamelModel):
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"text": data}
        return data


class QuestionIn(CamelModel):
    text: str = ""
    question_type: Optional[str] = Field(default=None, alias="type")
    required: bool = False
    choices: Optional[List[ChoiceIn]] = None
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None


class SurveyIn(CamelModel):
    title: str = ""
    description: str = ""
    is_public: Optional[bool] = None
    access_type: Optional[Visibility] = None
    questions: List[QuestionIn] = Field(default_factory=list)

    def resolve_visibility(self) -> Visibility:
        """`accessType` wins over the legacy `isPublic` flag; public when neither is sent."""
        if self.access_type is not None:
            return self.access_type
        if self.is_public is False:
            return Visibility.private
        return Visibility.public


class ChoiceOut(CamelModel):
    id: str
    text: str


class QuestionOut(CamelModel):
    id: str
    text: str
    question_type: str = Field(alias="type")
    required: bool
    position: int
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None
    choices: List[ChoiceOut] = Field(default_factory=list)

    @classmethod
    def from_question(cls, question: Question) -> "QuestionOut":
        return cls(
            id=question.question_id,
            text=question.text,
            question_type=question.question_type.value,
            required=question.is_required,
            position=question.position,
            scale_min=question.scale_min,
            scale_max=question.scale_max,
            choices=[ChoiceOut(id=c.choice_id, text=c.text) for c in question.choices],
        )


class SurveyOut(CamelModel):
    id: str
    title: str
    description: str
    owner_id: str
    access_type: Visibility
    is_public: bool
    created_at: datetime
    questions: List[QuestionOut] = Field(default_factory=list)

    @classmethod
    def from_survey(cls, survey: Survey) -> "SurveyOut":
        return cls(
            id=survey.survey_id,
            title=survey.title,
            description=survey.description,
            owner_id=survey.owner_id,
            access_type=survey.visibility,
            is_public=survey.visibility == Visibility.public,
            created_at=as_utc(survey.created_at),
            questions=[QuestionOut.from_question(q) for q in survey.questions],
        )

