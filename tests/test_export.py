import csv
import io

import pytest

from surveyhub.app.core.errors import ForbiddenError, NotFoundError
from surveyhub.app.schemas.response import AnswerIn
from surveyhub.app.services.export import ResponseExporter
from surveyhub.app.services.response_collector import ResponseCollector


@pytest.fixture
def exporter(store):
    return ResponseExporter(store)


def test_columns_and_rows_come_from_one_snapshot(exporter, survey, teacher, store, monkeypatch):
    pace, topics, _, _ = survey.questions
    ResponseCollector(store).submit_response(survey.survey_id, "anon-1", [
        AnswerIn(question_id=pace.question_id, value="Slow"),
        AnswerIn(question_id=topics.question_id, value=["A", "C"]),
    ])

    reads = []
    original_read = store.read

    def counting_read():
        reads.append(1)
        return original_read()

    monkeypatch.setattr(store, "read", counting_read)
    fieldnames, rows = exporter.export_rows(survey.survey_id, teacher)

    assert len(reads) == 1
    assert fieldnames == ["response_id", "respondent_id", "submitted_at", "Q1: How was the pace?",
                          "Q2: Topics you liked", "Q3: Rate the course", "Q4: Anything else?"]
    assert set(rows[0]) == set(fieldnames)
    assert rows[0]["Q2: Topics you liked"] == "A; C"


def test_csv_with_no_responses_has_header_only(exporter, survey, teacher):
    lines = list(csv.reader(io.StringIO(exporter.export_to_csv(survey.survey_id, teacher))))
    assert len(lines) == 1
    assert lines[0][3] == "Q1: How was the pace?"


def test_export_is_owner_only(exporter, survey, other_teacher):
    with pytest.raises(ForbiddenError):
        exporter.export_to_csv(survey.survey_id, other_teacher)
    with pytest.raises(NotFoundError):
        exporter.export_to_csv("missing", other_teacher)
