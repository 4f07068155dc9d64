"""Pydantic schemes for analytics and recommendations.
"""
# app/schemas/analytics.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from surveyhub.app.schemas.survey import CamelModel
from surveyhub.app.services.analytics import Distribution, RecommendedSurvey, SurveyAnalysis
from surveyhub.db.models import Visibility


class DistributionOut(CamelModel):
    question_id: str
    question_text: str
    question_type: str
    total_answers: int
    buckets: Optional[Dict[str, int]] = None
    texts: Optional[List[str]] = None
    average: Optional[float] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    @classmethod
    def from_distribution(cls, d: Distribution) -> "DistributionOut":
        return cls(
            question_id=d.question_id,
            question_text=d.question_text,
            question_type=d.question_type.value,
            total_answers=d.total_answers,
            buckets=d.buckets,
            texts=d.texts,
            average=d.average,
            minimum=d.minimum,
            maximum=d.maximum,
        )


class SurveyAnalysisOut(CamelModel):
    survey_id: str
    title: str
    total_responses: int
    questions: List[DistributionOut] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, a: SurveyAnalysis) -> "SurveyAnalysisOut":
        return cls(
            survey_id=a.survey_id,
            title=a.title,
            total_responses=a.total_responses,
            questions=[DistributionOut.from_distribution(d) for d in a.questions],
        )


class RecommendedSurveyOut(CamelModel):
    id: str
    title: str
    description: str
    owner_id: str
    owner_name: Optional[str] = None
    access_type: Visibility
    is_public: bool
    created_at: datetime
    total_questions: int
    response_count: int
    priority: int

    @classmethod
    def from_candidate(cls, c: RecommendedSurvey) -> "RecommendedSurveyOut":
        return cls(
            id=c.survey_id,
            title=c.title,
            description=c.description,
            owner_id=c.owner_id,
            owner_name=c.owner_name,
            access_type=c.visibility,
            is_public=c.visibility == Visibility.public,
            created_at=c.created_at,
            total_questions=c.total_questions,
            response_count=c.response_count,
            priority=int(c.tier),
        )


class RecommendedOut(CamelModel):
    success: bool = True
    data: List[RecommendedSurveyOut] = Field(default_factory=list)
