"""Writing survey aggregates: a survey, its ordered questions and their choices.

Every write runs in a single unit of work. Updates replace the whole question
tree (delete, then re-insert), so a failure at any step leaves the survey as
it was before the call.
"""
# app/services/survey_writer.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from surveyhub.app.core.config import settings
from surveyhub.app.core.errors import NotFoundError, StoreIntegrityError, ValidationError
from surveyhub.app.schemas.survey import QuestionIn
from surveyhub.db.models import Choice, Question, QuestionType, Survey, User, Visibility
from surveyhub.db.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class QuestionDraft:
    text: str
    question_type: QuestionType
    required: bool
    choices: List[str] = field(default_factory=list)
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None


def _parse_type(raw: Optional[str]) -> Optional[QuestionType]:
    if not raw:
        return None
    try:
        return QuestionType(raw.strip().upper())
    except ValueError:
        return None


def build_drafts(title: str, description: str, questions: Sequence[QuestionIn]) -> List[QuestionDraft]:
    """Validate a full survey payload and normalize it into drafts.

    All problems are collected before failing so the client can fix them in
    one round trip.

    Raises:
        ValidationError: With one detail entry per problem.
    """
    errors: list[dict] = []
    if not (title or "").strip():
        errors.append({"loc": "title", "msg": "must not be blank"})
    if not (description or "").strip():
        errors.append({"loc": "description", "msg": "must not be blank"})
    if not questions:
        errors.append({"loc": "questions", "msg": "at least one question is required"})

    drafts: list[QuestionDraft] = []
    for qi, item in enumerate(questions):
        loc = f"questions[{qi}]"
        text = (item.text or "").strip()
        if not text:
            errors.append({"loc": f"{loc}.text", "msg": "must not be blank"})

        qtype = _parse_type(item.question_type)
        if qtype is None:
            msg = "is required" if not item.question_type else f"unsupported question type '{item.question_type}'"
            errors.append({"loc": f"{loc}.type", "msg": msg})
            continue

        draft = QuestionDraft(text=text, question_type=qtype, required=item.required)

        if qtype.is_selectable:
            if not item.choices:
                errors.append({"loc": f"{loc}.choices", "msg": "at least one choice is required"})
            for ci, choice in enumerate(item.choices or []):
                choice_text = (choice.text or "").strip()
                if not choice_text:
                    errors.append({"loc": f"{loc}.choices[{ci}].text", "msg": "must not be blank"})
                draft.choices.append(choice_text)
        elif qtype == QuestionType.RATING_SCALE:
            draft.scale_min = item.scale_min if item.scale_min is not None else settings.RATING_SCALE_MIN
            draft.scale_max = item.scale_max if item.scale_max is not None else settings.RATING_SCALE_MAX
            if draft.scale_min >= draft.scale_max:
                errors.append({"loc": f"{loc}.scaleMin", "msg": "must be lower than scaleMax"})
        # choices sent for TEXT / RATING_SCALE are dropped

        drafts.append(draft)

    if errors:
        raise ValidationError("Survey payload is invalid", details=errors)
    return drafts


class SurveyWriteCoordinator:
    def __init__(self, store: EntityStore):
        self.store = store

    def create_survey(self, owner_id: str, title: str, description: str,
                      visibility: Visibility, questions: Sequence[QuestionIn]) -> Survey:
        """Persist a new survey with all its questions and choices atomically.

        Returns:
            Survey: The stored aggregate, questions and choices loaded.

        Raises:
            ValidationError: If the payload is incomplete.
            NotFoundError: If the owner is unknown.
            StoreIntegrityError: If an insert fails; nothing is stored.
        """
        drafts = build_drafts(title, description, questions)

        with self.store.unit_of_work() as session:
            if session.get(User, owner_id) is None:
                raise NotFoundError(f"User {owner_id} not found")

            survey = Survey(
                owner_id=owner_id,
                title=title.strip(),
                description=description.strip(),
                visibility=visibility,
            )
            session.add(survey)
            self._flush(session, "survey")
            self._insert_questions(session, survey, drafts)

        logger.info("Created survey %s with %d question(s) for %s", survey.survey_id, len(drafts), owner_id)
        return survey

    def update_survey(self, survey_id: str, owner_id: str, title: str, description: str,
                      visibility: Visibility, questions: Sequence[QuestionIn]) -> Survey:
        """Replace the scalar fields and the whole question tree of an owned survey.

        Existing questions and choices are deleted and the new tree is inserted
        in the same transaction. Answers to the removed questions go with them.

        Raises:
            NotFoundError: If no survey with this id is owned by `owner_id`.
        """
        drafts = build_drafts(title, description, questions)

        with self.store.unit_of_work() as session:
            survey = self._get_owned(session, survey_id, owner_id)
            survey.title = title.strip()
            survey.description = description.strip()
            survey.visibility = visibility

            question_ids = select(Question.question_id).where(Question.survey_id == survey_id)
            session.execute(delete(Choice).where(Choice.question_id.in_(question_ids)))
            session.execute(delete(Question).where(Question.survey_id == survey_id))
            self._flush(session, "survey")

            self._insert_questions(session, survey, drafts)

        logger.info("Rewrote survey %s with %d question(s)", survey_id, len(drafts))
        return survey

    def delete_survey(self, survey_id: str, owner_id: str) -> None:
        """Delete an owned survey with its questions, choices, responses and answers.

        Raises:
            NotFoundError: If the survey is absent or owned by someone else.
        """
        with self.store.unit_of_work() as session:
            survey = self._get_owned(session, survey_id, owner_id)
            session.delete(survey)

        logger.info("Deleted survey %s", survey_id)

    def get_survey(self, survey_id: str) -> Survey:
        with self.store.read() as session:
            survey = session.execute(
                select(Survey)
                .options(selectinload(Survey.questions).selectinload(Question.choices))
                .where(Survey.survey_id == survey_id)
            ).scalar_one_or_none()
            if survey is None:
                raise NotFoundError("Survey not found")
            return survey

    def list_owned(self, owner_id: str) -> List[Survey]:
        with self.store.read() as session:
            return list(session.execute(
                select(Survey)
                .options(selectinload(Survey.questions).selectinload(Question.choices))
                .where(Survey.owner_id == owner_id)
                .order_by(Survey.created_at.desc())
            ).scalars().all())

    @staticmethod
    def _get_owned(session: Session, survey_id: str, owner_id: str) -> Survey:
        survey = session.execute(
            select(Survey).where(Survey.survey_id == survey_id, Survey.owner_id == owner_id)
        ).scalar_one_or_none()
        if survey is None:
            raise NotFoundError("Survey not found or not owned by you")
        return survey

    @staticmethod
    def _flush(session: Session, what: str, question_index: int | None = None) -> None:
        try:
            session.flush()
        except IntegrityError as exc:
            logger.error("Insert of %s failed: %s", what, exc.orig)
            raise StoreIntegrityError(f"Failed to store {what}", question_index=question_index) from exc

    def _insert_questions(self, session: Session, survey: Survey, drafts: Sequence[QuestionDraft]) -> None:
        # parent before children; each subtree is flushed on its own so a
        # failure names the question it happened in
        for index, draft in enumerate(drafts):
            question = Question(
                survey_id=survey.survey_id,
                position=index,
                text=draft.text,
                question_type=draft.question_type,
                is_required=draft.required,
                scale_min=draft.scale_min,
                scale_max=draft.scale_max,
            )
            question.choices = [Choice(text=text, position=pos) for pos, text in enumerate(draft.choices)]
            survey.questions.append(question)
            self._flush(session, f"question {index + 1}", question_index=index)
