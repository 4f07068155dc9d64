"""Collecting survey responses.

A respondent submits their whole answer set once per survey. The response and
its answers are written in one unit of work; a second submission for the same
(survey, respondent) pair is rejected with `ConflictError`.
"""
# app/services/response_collector.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from surveyhub.app.core.errors import (
    AuthenticationError, ConflictError, ForbiddenError, NotFoundError, StoreIntegrityError, ValidationError,
)
from surveyhub.app.schemas.response import AnswerIn
from surveyhub.app.services.answer_values import AnswerValue, deserialize, parse_answer_value, serialize
from surveyhub.db.models import (
    Answer, Question, QuestionType, Response, Survey, TeacherStudent, User, UserRole,
)
from surveyhub.db.models.survey import as_utc
from surveyhub.db.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class SubmittedAnswer:
    question_id: str
    value: AnswerValue
    question_text: str = ""
    question_type: QuestionType = QuestionType.TEXT


@dataclass
class Submission:
    response_id: str
    survey_id: str
    respondent_id: str
    submitted_at: datetime
    ip_address: Optional[str] = None
    respondent_name: Optional[str] = None
    answers: List[SubmittedAnswer] = field(default_factory=list)


def validate_answers(survey: Survey, answers: Sequence[AnswerIn]) -> List[Tuple[Question, AnswerValue]]:
    """Match every answer to a question of `survey` and type its value.

    Raises:
        ValidationError: Listing every malformed answer and every unanswered
            required question.
    """
    questions = {q.question_id: q for q in survey.questions}
    errors: list[dict] = []
    values: list[Tuple[Question, AnswerValue]] = []
    seen: set[str] = set()

    for index, answer in enumerate(answers):
        loc = f"answers[{index}]"
        question = questions.get(answer.question_id)
        if question is None:
            errors.append({"loc": f"{loc}.questionId", "msg": "question does not belong to this survey"})
            continue
        if question.question_id in seen:
            errors.append({"loc": f"{loc}.questionId", "msg": "question answered more than once"})
            continue
        seen.add(question.question_id)
        try:
            values.append((question, parse_answer_value(question, answer.value)))
        except ValueError as exc:
            errors.append({"loc": f"{loc}.value", "msg": str(exc)})

    for question in survey.questions:
        if question.is_required and question.question_id not in seen:
            errors.append({"loc": "answers", "msg": f"question {question.position + 1} is required"})

    if errors:
        raise ValidationError("Answers are invalid", details=errors)
    return values


def owned_survey(session: Session, survey_id: str, owner_id: str) -> Survey:
    """Load a survey with its questions for its owner.

    Raises:
        NotFoundError: The survey does not exist.
        ForbiddenError: The caller does not own the survey.
    """
    survey = session.execute(
        select(Survey)
        .options(selectinload(Survey.questions).selectinload(Question.choices))
        .where(Survey.survey_id == survey_id)
    ).scalar_one_or_none()
    if survey is None:
        raise NotFoundError("Survey not found")
    if survey.owner_id != owner_id:
        raise ForbiddenError("You are not allowed to view the responses of this survey")
    return survey


def load_submissions(session: Session, survey_id: str) -> List[Submission]:
    """All responses of a survey, newest first, with answers in question order."""
    responses = session.execute(
        select(Response)
        .options(selectinload(Response.answers).selectinload(Answer.question))
        .where(Response.survey_id == survey_id)
        .order_by(Response.submitted_at.desc(), Response.response_id)
    ).scalars().all()

    names = dict(session.execute(
        select(User.user_id, User.name).where(User.user_id.in_([r.respondent_id for r in responses]))
    ).all())

    submissions = []
    for response in responses:
        ordered = sorted(response.answers, key=lambda a: a.question.position)
        submissions.append(Submission(
            response_id=response.response_id,
            survey_id=survey_id,
            respondent_id=response.respondent_id,
            submitted_at=as_utc(response.submitted_at),
            ip_address=response.ip_address,
            respondent_name=names.get(response.respondent_id),
            answers=[
                SubmittedAnswer(
                    question_id=a.question_id,
                    value=deserialize(a.kind, a.value),
                    question_text=a.question.text,
                    question_type=a.question.question_type,
                )
                for a in ordered
            ],
        ))
    return submissions


class ResponseCollector:
    def __init__(self, store: EntityStore):
        self.store = store

    def submit_response(self, survey_id: str, respondent_id: str, answers: Sequence[AnswerIn],
                        ip_address: Optional[str] = None, authenticated: bool = False) -> Submission:
        """Store one respondent's complete answer set for a survey.

        Args:
            survey_id: The survey being answered.
            respondent_id: Authenticated user id or an anonymous client token.
            answers: One entry per answered question.
            ip_address: Source address of the request, if known.
            authenticated: Whether `respondent_id` was proven by a token. An
                unproven id may not name a registered user, and only proven
                students get linked to the survey owner.

        Returns:
            Submission: The stored response with typed answers.

        Raises:
            ValidationError: Missing respondent, no answers, or malformed answers.
            AuthenticationError: An unauthenticated caller used a registered user's id.
            NotFoundError: The survey does not exist.
            ConflictError: The respondent already answered this survey.
            StoreIntegrityError: An insert failed; nothing was stored.
        """
        respondent_id = (respondent_id or "").strip()
        if not respondent_id:
            raise ValidationError("Respondent id is required",
                                  details=[{"loc": "respondentId", "msg": "must not be blank"}])
        if not answers:
            raise ValidationError("At least one answer is required",
                                  details=[{"loc": "answers", "msg": "must not be empty"}])

        try:
            with self.store.unit_of_work() as session:
                survey = session.execute(
                    select(Survey)
                    .options(selectinload(Survey.questions).selectinload(Question.choices))
                    .where(Survey.survey_id == survey_id)
                ).scalar_one_or_none()
                if survey is None:
                    raise NotFoundError("Survey not found")

                if not authenticated and session.get(User, respondent_id) is not None:
                    raise AuthenticationError("Sign in to respond as a registered user")

                submitted_at = self._submitted_at(session, survey_id, respondent_id)
                if submitted_at is not None:
                    raise ConflictError("You have already taken part in this survey", submitted_at=submitted_at)

                typed = validate_answers(survey, answers)

                response = Response(survey_id=survey_id, respondent_id=respondent_id, ip_address=ip_address)
                session.add(response)
                session.flush()

                for question, value in typed:
                    kind, stored = serialize(value)
                    session.add(Answer(
                        response_id=response.response_id,
                        question_id=question.question_id,
                        kind=kind,
                        value=stored,
                    ))
                session.flush()
                owner_id = survey.owner_id
        except StoreIntegrityError:
            # a concurrent submission may have won the unique constraint race
            submitted_at = self.submitted_at(survey_id, respondent_id)
            if submitted_at is not None:
                raise ConflictError("You have already taken part in this survey", submitted_at=submitted_at) from None
            raise

        logger.info("Stored response %s for survey %s (%d answer(s))",
                    response.response_id, survey_id, len(typed))

        if authenticated:
            self._link_student_to_owner(owner_id, respondent_id, survey_id)

        return Submission(
            response_id=response.response_id,
            survey_id=survey_id,
            respondent_id=respondent_id,
            submitted_at=as_utc(response.submitted_at),
            ip_address=ip_address,
            answers=[
                SubmittedAnswer(q.question_id, value, q.text, q.question_type) for q, value in typed
            ],
        )

    def has_responded(self, survey_id: str, respondent_id: str) -> bool:
        return self.submitted_at(survey_id, respondent_id) is not None

    def submitted_at(self, survey_id: str, respondent_id: str) -> Optional[datetime]:
        with self.store.read() as session:
            return self._submitted_at(session, survey_id, respondent_id)

    def list_responses(self, survey_id: str, owner_id: str) -> List[Submission]:
        """All responses of a survey with answers resolved to their questions, newest first.

        Raises:
            NotFoundError: The survey does not exist.
            ForbiddenError: The caller does not own the survey.
        """
        with self.store.read() as session:
            owned_survey(session, survey_id, owner_id)
            return load_submissions(session, survey_id)

    def participation(self, respondent_id: str) -> Dict[str, Tuple[datetime, int]]:
        """survey_id -> (submitted_at, answered question count) for one respondent."""
        with self.store.read() as session:
            rows = session.execute(
                select(Response.survey_id, Response.submitted_at, func.count(Answer.answer_id))
                .outerjoin(Answer, Answer.response_id == Response.response_id)
                .where(Response.respondent_id == respondent_id)
                .group_by(Response.survey_id, Response.submitted_at)
            ).all()
            return {survey_id: (as_utc(submitted_at), answered) for survey_id, submitted_at, answered in rows}

    @staticmethod
    def _submitted_at(session: Session, survey_id: str, respondent_id: str) -> Optional[datetime]:
        value = session.execute(
            select(Response.submitted_at).where(
                Response.survey_id == survey_id, Response.respondent_id == respondent_id
            )
        ).scalar_one_or_none()
        return as_utc(value)

    def _link_student_to_owner(self, owner_id: str, respondent_id: str, survey_id: str) -> None:
        """Link a student respondent to the teacher owning the survey. Best effort."""
        try:
            with self.store.unit_of_work() as session:
                owner = session.get(User, owner_id)
                student = session.get(User, respondent_id)
                if owner is None or student is None:
                    return
                if owner.role != UserRole.teacher or student.role != UserRole.student:
                    return
                linked = session.execute(
                    select(TeacherStudent.link_id).where(
                        TeacherStudent.teacher_id == owner_id, TeacherStudent.student_id == respondent_id
                    )
                ).first()
                if linked:
                    return
                session.add(TeacherStudent(teacher_id=owner_id, student_id=respondent_id, survey_id=survey_id))
            logger.info("Linked student %s to teacher %s via survey %s", respondent_id, owner_id, survey_id)
        except Exception as e:
            logger.error("Failed to link student %s to teacher %s: %s", respondent_id, owner_id, e)
