"""Typed answer values.

An answer value is one of `TextValue`, `ChoiceValue`, `MultiChoiceValue` or
`RatingValue`. The variant is chosen from the question's declared type when
the answer is written, and stored together with its tag so reads never have
to guess.
"""
# app/services/answer_values.py
import json
from dataclasses import dataclass
from typing import Any, Tuple, Union

from surveyhub.db.models import AnswerKind, Question, QuestionType
from surveyhub.app.core.config import settings


@dataclass(frozen=True)
class TextValue:
    text: str
    kind = AnswerKind.text


@dataclass(frozen=True)
class ChoiceValue:
    choice: str
    kind = AnswerKind.choice


@dataclass(frozen=True)
class MultiChoiceValue:
    choices: Tuple[str, ...]
    kind = AnswerKind.multi_choice


@dataclass(frozen=True)
class RatingValue:
    rating: int
    kind = AnswerKind.rating


AnswerValue = Union[TextValue, ChoiceValue, MultiChoiceValue, RatingValue]


def scale_bounds(question: Question) -> Tuple[int, int]:
    low = question.scale_min if question.scale_min is not None else settings.RATING_SCALE_MIN
    high = question.scale_max if question.scale_max is not None else settings.RATING_SCALE_MAX
    return low, high


def _resolve_choice(question: Question, raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("expected a non-empty choice")
    for choice in question.choices:
        if raw == choice.choice_id or raw == choice.text:
            return choice.text
    raise ValueError(f"'{raw}' is not one of the question's choices")


def _coerce_rating(raw: Any) -> int:
    # bool is an int subclass and never a rating
    if isinstance(raw, bool):
        raise ValueError("expected a numeric rating")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise ValueError("expected a whole-number rating")


def parse_answer_value(question: Question, raw: Any) -> AnswerValue:
    """Build the variant matching `question.question_type` from a raw JSON value.

    Raises:
        ValueError: If the value is empty or does not fit the question type.
    """
    qtype = question.question_type

    if qtype == QuestionType.TEXT:
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError("expected a non-empty text")
        return TextValue(raw.strip())

    if qtype == QuestionType.SINGLE_CHOICE:
        return ChoiceValue(_resolve_choice(question, raw))

    if qtype == QuestionType.MULTIPLE_CHOICE:
        if not isinstance(raw, list) or not raw:
            raise ValueError("expected a non-empty list of choices")
        picked: list[str] = []
        for item in raw:
            text = _resolve_choice(question, item)
            if text not in picked:
                picked.append(text)
        return MultiChoiceValue(tuple(picked))

    rating = _coerce_rating(raw)
    low, high = scale_bounds(question)
    if not low <= rating <= high:
        raise ValueError(f"rating must be between {low} and {high}")
    return RatingValue(rating)


def serialize(value: AnswerValue) -> Tuple[AnswerKind, str]:
    if isinstance(value, TextValue):
        return value.kind, value.text
    if isinstance(value, ChoiceValue):
        return value.kind, value.choice
    if isinstance(value, MultiChoiceValue):
        return value.kind, json.dumps(list(value.choices), ensure_ascii=False)
    return value.kind, str(value.rating)


def deserialize(kind: AnswerKind, stored: str) -> AnswerValue:
    if kind == AnswerKind.multi_choice:
        try:
            items = json.loads(stored)
        except ValueError:
            items = [stored]
        if not isinstance(items, list):
            items = [items]
        return MultiChoiceValue(tuple(str(i) for i in items))
    if kind == AnswerKind.rating:
        try:
            return RatingValue(int(stored))
        except ValueError:
            return TextValue(stored)
    if kind == AnswerKind.choice:
        return ChoiceValue(stored)
    return TextValue(stored)


def to_plain(value: AnswerValue) -> Union[str, list, int]:
    """JSON-friendly form: str, list of str, or int."""
    if isinstance(value, TextValue):
        return value.text
    if isinstance(value, ChoiceValue):
        return value.choice
    if isinstance(value, MultiChoiceValue):
        return list(value.choices)
    return value.rating
