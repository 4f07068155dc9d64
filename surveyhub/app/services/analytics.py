"""Read-side analytics over stored responses.

- `compute_distribution`: per-question answer distribution (pure).
- `compare_candidates` / `rank_candidates`: recommendation ordering (pure).
- `AnalyticsAggregator`: loads the data from the store and applies the above.
"""
# app/services/analytics.py
import enum
from dataclasses import dataclass, field
from datetime import datetime
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from surveyhub.app.core.config import settings
from surveyhub.app.core.errors import ForbiddenError, NotFoundError
from surveyhub.app.services.answer_values import (
    AnswerValue, ChoiceValue, MultiChoiceValue, RatingValue, TextValue, deserialize, scale_bounds,
)
from surveyhub.db.models import (
    Answer, Question, QuestionType, Response, Survey, TeacherStudent, User, UserRole, Visibility,
)
from surveyhub.db.models.survey import as_utc
from surveyhub.db.store import EntityStore


class Tier(enum.IntEnum):
    OTHER = 1
    PUBLIC = 2
    PRIORITY = 3


@dataclass
class Distribution:
    question_id: str
    question_text: str
    question_type: QuestionType
    total_answers: int = 0
    buckets: Optional[Dict[str, int]] = None
    texts: Optional[List[str]] = None
    average: Optional[float] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None


@dataclass
class SurveyAnalysis:
    survey_id: str
    title: str
    total_responses: int
    questions: List[Distribution] = field(default_factory=list)


@dataclass
class RecommendedSurvey:
    survey_id: str
    title: str
    description: str
    owner_id: str
    owner_name: Optional[str]
    visibility: Visibility
    created_at: datetime
    total_questions: int
    response_count: int
    tier: Tier


def _selected_options(value: AnswerValue) -> List[str]:
    if isinstance(value, MultiChoiceValue):
        return list(value.choices)
    if isinstance(value, ChoiceValue):
        return [value.choice]
    if isinstance(value, RatingValue):
        return [str(value.rating)]
    return [value.text]


def compute_distribution(question: Question, values: Iterable[AnswerValue]) -> Distribution:
    """Aggregate the answers given to one question.

    Choice questions count every known choice (0 when never picked) in choice
    order; each option of a multi-select answer counts on its own. Rating
    questions count every step of the scale. Values matching no known bucket
    get a bucket of their own, keyed by the raw string. Text questions are not
    aggregated: the non-empty answers are returned as they are.
    """
    values = list(values)
    result = Distribution(
        question_id=question.question_id,
        question_text=question.text,
        question_type=question.question_type,
    )

    if question.question_type == QuestionType.TEXT:
        result.texts = [v.text for v in values if isinstance(v, TextValue) and v.text.strip()]
        result.total_answers = len(result.texts)
        return result

    if question.question_type == QuestionType.RATING_SCALE:
        low, high = scale_bounds(question)
        buckets = {str(n): 0 for n in range(low, high + 1)}
        ratings = [v.rating for v in values if isinstance(v, RatingValue)]
        if ratings:
            result.average = round(sum(ratings) / len(ratings), 2)
            result.minimum = min(ratings)
            result.maximum = max(ratings)
    else:
        buckets = {choice.text: 0 for choice in question.choices}

    for value in values:
        for option in _selected_options(value):
            buckets[option] = buckets.get(option, 0) + 1

    result.buckets = buckets
    result.total_answers = len(values)
    return result


def compare_candidates(a: RecommendedSurvey, b: RecommendedSurvey) -> int:
    """Tier descending, then response count descending, then newest first."""
    if a.tier != b.tier:
        return -1 if a.tier > b.tier else 1
    if a.response_count != b.response_count:
        return -1 if a.response_count > b.response_count else 1
    if a.created_at != b.created_at:
        return -1 if a.created_at > b.created_at else 1
    if a.survey_id != b.survey_id:
        return -1 if a.survey_id < b.survey_id else 1
    return 0


def rank_candidates(candidates: Iterable[RecommendedSurvey]) -> List[RecommendedSurvey]:
    return sorted(candidates, key=cmp_to_key(compare_candidates))


def assign_tier(role: Optional[UserRole], viewer_id: Optional[str], linked_teachers: Set[str],
                owner_id: str, visibility: Visibility) -> Tier:
    if role == UserRole.student:
        if owner_id in linked_teachers:
            return Tier.PRIORITY
        if visibility == Visibility.public:
            return Tier.PUBLIC
        return Tier.OTHER
    if role == UserRole.teacher:
        return Tier.PRIORITY if owner_id == viewer_id else Tier.OTHER
    return Tier.PUBLIC


def linked_teacher_ids(session: Session, student_id: str) -> Set[str]:
    return set(session.execute(
        select(TeacherStudent.teacher_id).where(TeacherStudent.student_id == student_id)
    ).scalars().all())


def visible_to(viewer_role: Optional[UserRole], viewer_id: Optional[str], linked_teachers: Set[str]):
    """WHERE clause selecting the surveys a viewer may discover.

    Anonymous viewers get public surveys; students also get `students_only`
    surveys of linked teachers; teachers also get their own surveys.
    """
    is_public = Survey.visibility == Visibility.public
    if viewer_role == UserRole.student:
        return or_(is_public, and_(Survey.visibility == Visibility.students_only,
                                   Survey.owner_id.in_(linked_teachers)))
    if viewer_role == UserRole.teacher:
        return or_(is_public, Survey.owner_id == viewer_id)
    return is_public


class AnalyticsAggregator:
    def __init__(self, store: EntityStore):
        self.store = store

    def answer_distribution(self, survey_id: str, question_id: str, viewer_id: Optional[str] = None,
                            viewer_role: Optional[UserRole] = None) -> Distribution:
        """Distribution of the answers to one question of a survey.

        When a viewer is given, the same access rule as `analyze` applies.

        Raises:
            NotFoundError: If the question does not exist in this survey.
            ForbiddenError: The viewer may not see results yet.
        """
        with self.store.read() as session:
            if viewer_id is not None:
                survey = session.get(Survey, survey_id)
                if survey is None:
                    raise NotFoundError("Survey not found")
                self._check_viewer(session, survey, viewer_id, viewer_role)
            question = session.execute(
                select(Question)
                .options(selectinload(Question.choices))
                .where(Question.question_id == question_id, Question.survey_id == survey_id)
            ).scalar_one_or_none()
            if question is None:
                raise NotFoundError("Question not found in this survey")

            rows = session.execute(
                select(Answer.kind, Answer.value).where(Answer.question_id == question_id)
            ).all()
            return compute_distribution(question, [deserialize(kind, value) for kind, value in rows])

    def analyze(self, survey_id: str, viewer_id: str, viewer_role: UserRole) -> SurveyAnalysis:
        """Distributions for every question of a survey.

        Teachers may always look; anyone else only after submitting a response.

        Raises:
            NotFoundError: The survey does not exist.
            ForbiddenError: The viewer has not taken part yet.
        """
        with self.store.read() as session:
            survey = session.execute(
                select(Survey)
                .options(selectinload(Survey.questions).selectinload(Question.choices))
                .where(Survey.survey_id == survey_id)
            ).scalar_one_or_none()
            if survey is None:
                raise NotFoundError("Survey not found")

            self._check_viewer(session, survey, viewer_id, viewer_role)

            total = session.scalar(
                select(func.count(Response.response_id)).where(Response.survey_id == survey_id)
            ) or 0

            per_question: Dict[str, List[AnswerValue]] = {q.question_id: [] for q in survey.questions}
            rows = session.execute(
                select(Answer.question_id, Answer.kind, Answer.value)
                .join(Response, Answer.response_id == Response.response_id)
                .where(Response.survey_id == survey_id)
            ).all()
            for question_id, kind, value in rows:
                per_question.setdefault(question_id, []).append(deserialize(kind, value))

            return SurveyAnalysis(
                survey_id=survey.survey_id,
                title=survey.title,
                total_responses=total,
                questions=[compute_distribution(q, per_question[q.question_id]) for q in survey.questions],
            )

    @staticmethod
    def _check_viewer(session: Session, survey: Survey, viewer_id: str, viewer_role: Optional[UserRole]) -> None:
        if viewer_role == UserRole.teacher or survey.owner_id == viewer_id:
            return
        took_part = session.execute(
            select(Response.response_id).where(
                Response.survey_id == survey.survey_id, Response.respondent_id == viewer_id
            )
        ).first()
        if not took_part:
            raise ForbiddenError("Take part in this survey before viewing its results")

    def recommend(self, viewer_role: Optional[UserRole], viewer_id: Optional[str],
                  limit: Optional[int] = None) -> List[RecommendedSurvey]:
        """Surveys the viewer may discover (see `visible_to`), best first.

        Never fails for "no results".
        """
        if limit is None:
            limit = settings.RECOMMENDATION_LIMIT
        limit = max(0, min(limit, settings.RECOMMENDATION_MAX_LIMIT))
        if viewer_id is None:
            viewer_role = None

        with self.store.read() as session:
            linked: Set[str] = set()
            if viewer_role == UserRole.student:
                linked = linked_teacher_ids(session, viewer_id)
            visible = visible_to(viewer_role, viewer_id, linked)

            responses = (
                select(Response.survey_id, func.count(Response.response_id).label("n"))
                .group_by(Response.survey_id)
                .subquery()
            )
            questions = (
                select(Question.survey_id, func.count(Question.question_id).label("n"))
                .group_by(Question.survey_id)
                .subquery()
            )
            rows = session.execute(
                select(Survey, User.name, func.coalesce(responses.c.n, 0), func.coalesce(questions.c.n, 0))
                .outerjoin(User, Survey.owner_id == User.user_id)
                .outerjoin(responses, responses.c.survey_id == Survey.survey_id)
                .outerjoin(questions, questions.c.survey_id == Survey.survey_id)
                .where(visible)
            ).all()

        candidates = [
            RecommendedSurvey(
                survey_id=survey.survey_id,
                title=survey.title,
                description=survey.description,
                owner_id=survey.owner_id,
                owner_name=owner_name,
                visibility=survey.visibility,
                created_at=as_utc(survey.created_at),
                total_questions=question_count,
                response_count=response_count,
                tier=assign_tier(viewer_role, viewer_id, linked, survey.owner_id, survey.visibility),
            )
            for survey, owner_name, response_count, question_count in rows
        ]
        return rank_candidates(candidates)[:limit]
