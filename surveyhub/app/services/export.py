# app/services/export.py
import csv
import io
from typing import Any, Dict, List, Tuple

from surveyhub.app.services.answer_values import MultiChoiceValue, to_plain
from surveyhub.app.services.response_collector import load_submissions, owned_survey
from surveyhub.db.models import Question
from surveyhub.db.store import EntityStore

_FIXED_COLUMNS = ["response_id", "respondent_id", "submitted_at"]


def _column(question: Question) -> str:
    # question texts may repeat, positions do not
    return f"Q{question.position + 1}: {question.text}"


class ResponseExporter:
    """Export of a survey's responses for its owner"""

    def __init__(self, store: EntityStore):
        self.store = store

    def export_rows(self, survey_id: str, owner_id: str) -> Tuple[List[str], List[Dict[str, Any]]]:
        """
        Column names and one row per response, read in a single snapshot so
        the rows always match the columns.

        :raises NotFoundError: the survey does not exist
        :raises ForbiddenError: the caller is not the owner
        """
        with self.store.read() as session:
            survey = owned_survey(session, survey_id, owner_id)
            submissions = load_submissions(session, survey_id)
            questions = list(survey.questions)

        fieldnames = _FIXED_COLUMNS + [_column(q) for q in questions]
        rows = []
        for submission in submissions:
            row: Dict[str, Any] = {
                "response_id": submission.response_id,
                "respondent_id": submission.respondent_id,
                "submitted_at": submission.submitted_at.isoformat(),
            }
            values = {a.question_id: a.value for a in submission.answers}
            for question in questions:
                value = values.get(question.question_id)
                if value is None:
                    row[_column(question)] = ""
                elif isinstance(value, MultiChoiceValue):
                    row[_column(question)] = "; ".join(value.choices)
                else:
                    row[_column(question)] = to_plain(value)
            rows.append(row)
        return fieldnames, rows

    def export_to_csv(self, survey_id: str, owner_id: str) -> str:
        fieldnames, rows = self.export_rows(survey_id, owner_id)
        return self._export_table_to_csv(rows, fieldnames)

    @staticmethod
    def _export_table_to_csv(data: List[Dict[str, Any]], fieldnames: List[str]) -> str:
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(data)
        return output.getvalue()
