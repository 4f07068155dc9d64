import pytest

from surveyhub.app.schemas.response import AnswerIn
from surveyhub.app.services.catalogue import SurveyCatalogue
from surveyhub.app.services.response_collector import ResponseCollector
from surveyhub.db.models import UserRole, Visibility

from conftest import feedback_questions


@pytest.fixture
def catalogue(store):
    return SurveyCatalogue(store)


@pytest.fixture
def surveys(writer, teacher, other_teacher):
    def make(owner, title, visibility):
        return writer.create_survey(owner, title, "D", visibility, feedback_questions()).survey_id

    return {
        "class_only": make(teacher, "Class only", Visibility.students_only),
        "mine_public": make(teacher, "Public", Visibility.public),
        "draft": make(teacher, "Draft", Visibility.private),
        "elsewhere": make(other_teacher, "Elsewhere", Visibility.public),
        "not_yours": make(other_teacher, "Not yours", Visibility.students_only),
    }


def link_by_answering(store, writer, survey_id, student):
    pace = writer.get_survey(survey_id).questions[0]
    ResponseCollector(store).submit_response(survey_id, student, [AnswerIn(question_id=pace.question_id, value="Fine")],
                                             authenticated=True)


def test_anonymous_listing_is_public_only_newest_first(catalogue, surveys):
    listed = catalogue.list_visible(None, None)
    assert [s.survey_id for s in listed] == [surveys["elsewhere"], surveys["mine_public"]]
    assert [len(q.choices) for q in listed[0].questions] == [3, 3, 0, 0]


def test_teacher_listing_includes_own_surveys(catalogue, surveys, teacher):
    ids = {s.survey_id for s in catalogue.list_visible(UserRole.teacher, teacher)}
    assert ids == {surveys["class_only"], surveys["mine_public"], surveys["draft"], surveys["elsewhere"]}


def test_dashboard_before_any_link(catalogue, surveys, student):
    entries = catalogue.student_dashboard(student)

    assert {e.survey.survey_id for e in entries} == {surveys["mine_public"], surveys["elsewhere"]}
    assert all(e.status == "open" and not e.from_teacher and e.progress == 0 for e in entries)


def test_dashboard_puts_linked_teacher_first(catalogue, surveys, store, writer, student):
    link_by_answering(store, writer, surveys["mine_public"], student)

    entries = catalogue.student_dashboard(student)
    ids = [e.survey.survey_id for e in entries]

    assert ids == [surveys["mine_public"], surveys["class_only"], surveys["elsewhere"]]

    answered = next(e for e in entries if e.survey.survey_id == surveys["mine_public"])
    assert answered.status == "completed"
    assert (answered.answered_questions, answered.total_questions, answered.progress) == (1, 4, 25)
    assert answered.submitted_at is not None
    assert answered.owner_name == "Ms. Hopper"
