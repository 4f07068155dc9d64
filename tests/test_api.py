import csv
import io
from datetime import datetime

import pytest

from surveyhub.db.models import UserRole

from conftest import auth


def parse_ts(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


SURVEY_BODY = {
    "title": "Course feedback",
    "description": "End of term",
    "accessType": "public",
    "questions": [
        {"text": "How was the pace?", "type": "SINGLE_CHOICE", "required": True, "choices": ["Slow", "Fine", "Fast"]},
        {"text": "Rate the course", "type": "RATING_SCALE"},
        {"text": "Anything else?", "type": "TEXT"},
    ],
}


@pytest.fixture
def created(client, teacher):
    resp = client.post("/surveys", json=SURVEY_BODY, headers=auth(teacher, UserRole.teacher))
    assert resp.status_code == 201
    return resp.json()


def answers_for(survey, pace="Fine", rating=4):
    pace_q, rating_q, _ = survey["questions"]
    return [
        {"questionId": pace_q["id"], "value": pace},
        {"questionId": rating_q["id"], "value": rating},
    ]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_and_fetch_survey(client, created, teacher):
    assert created["ownerId"] == teacher
    assert created["isPublic"] is True
    assert [q["type"] for q in created["questions"]] == ["SINGLE_CHOICE", "RATING_SCALE", "TEXT"]
    assert [c["text"] for c in created["questions"][0]["choices"]] == ["Slow", "Fine", "Fast"]

    fetched = client.get(f"/surveys/{created['id']}").json()
    assert fetched == created


def test_is_public_false_means_private(client, teacher):
    body = dict(SURVEY_BODY, isPublic=False)
    del body["accessType"]
    resp = client.post("/surveys", json=body, headers=auth(teacher, UserRole.teacher))
    assert resp.json()["accessType"] == "private"


def test_create_requires_teacher(client, student):
    assert client.post("/surveys", json=SURVEY_BODY).status_code == 401
    resp = client.post("/surveys", json=SURVEY_BODY, headers=auth(student, UserRole.student))
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_invalid_survey_is_400_with_details(client, teacher):
    body = dict(SURVEY_BODY, title="", questions=[{"text": "Pick", "type": "SINGLE_CHOICE", "choices": []}])
    resp = client.post("/surveys", json=body, headers=auth(teacher, UserRole.teacher))

    assert resp.status_code == 400
    payload = resp.json()
    assert payload["success"] is False
    assert payload["code"] == "VALIDATION_ERROR"
    assert {d["loc"] for d in payload["details"]} == {"title", "questions[0].choices"}


def test_malformed_body_is_400(client, teacher):
    resp = client.post("/surveys", json={"questions": "nope"}, headers=auth(teacher, UserRole.teacher))
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_bad_token_is_401(client):
    resp = client.get("/teacher/surveys", headers={"Authorization": "Bearer forged.token"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "UNAUTHENTICATED"


def test_unknown_survey_is_404(client):
    resp = client.get("/surveys/missing")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Survey not found", "code": "NOT_FOUND"}


def test_submit_then_conflict(client, created, student):
    headers = auth(student, UserRole.student)
    first = client.post(f"/surveys/{created['id']}/responses", json={"answers": answers_for(created)}, headers=headers)
    assert first.status_code == 201
    assert first.json()["respondentId"] == student
    assert [a["value"] for a in first.json()["answers"]] == ["Fine", 4]

    again = client.post(f"/surveys/{created['id']}/responses", json={"answers": answers_for(created)}, headers=headers)
    assert again.status_code == 409
    body = again.json()
    assert body["code"] == "ALREADY_PARTICIPATED"
    assert parse_ts(body["submittedAt"]) == parse_ts(first.json()["submittedAt"])


def test_anonymous_submission_and_check(client, created):
    url = f"/responses/check/{created['id']}/anon-7"
    assert client.get(url).json() == {"hasTaken": False, "submittedAt": None}

    resp = client.post(f"/surveys/{created['id']}/responses",
                       json={"respondentId": "anon-7", "answers": answers_for(created, rating=2)})
    assert resp.status_code == 201

    check = client.get(url).json()
    assert check["hasTaken"] is True
    assert parse_ts(check["submittedAt"]) == parse_ts(resp.json()["submittedAt"])


def test_invalid_answer_is_400(client, created):
    resp = client.post(f"/surveys/{created['id']}/responses",
                       json={"respondentId": "anon-1", "answers": answers_for(created, rating=11)})
    assert resp.status_code == 400
    assert resp.json()["details"] == [{"loc": "answers[1].value", "msg": "rating must be between 1 and 5"}]


def test_update_and_delete(client, created, teacher, other_teacher):
    url = f"/surveys/{created['id']}"
    body = dict(SURVEY_BODY, title="Renamed")

    assert client.put(url, json=body, headers=auth(other_teacher, UserRole.teacher)).status_code == 404
    updated = client.put(url, json=body, headers=auth(teacher, UserRole.teacher))
    assert updated.status_code == 200
    assert updated.json()["title"] == "Renamed"

    assert client.delete(url, headers=auth(teacher, UserRole.teacher)).status_code == 204
    assert client.get(url).status_code == 404
    assert client.delete(url, headers=auth(teacher, UserRole.teacher)).status_code == 404


def test_owner_reads_responses_and_export(client, created, teacher, student):
    client.post(f"/surveys/{created['id']}/responses", json={"answers": answers_for(created)},
                headers=auth(student, UserRole.student))

    listed = client.get(f"/surveys/{created['id']}/responses", headers=auth(teacher, UserRole.teacher)).json()
    assert listed[0]["respondentName"] == "Ada"
    assert listed[0]["answers"][0]["questionText"] == "How was the pace?"

    assert client.get(f"/surveys/{created['id']}/responses",
                      headers=auth(student, UserRole.student)).status_code == 403

    export = client.get(f"/surveys/{created['id']}/responses/export", headers=auth(teacher, UserRole.teacher))
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(export.text)))
    assert rows[0]["Q1: How was the pace?"] == "Fine"
    assert rows[0]["Q2: Rate the course"] == "4"
    assert rows[0]["Q3: Anything else?"] == ""


def test_analysis_and_distribution(client, created, student, other_student):
    survey_id = created["id"]
    client.post(f"/surveys/{survey_id}/responses", json={"answers": answers_for(created, pace="Fast")},
                headers=auth(student, UserRole.student))

    analysis = client.get(f"/surveys/{survey_id}/analysis", headers=auth(student, UserRole.student))
    assert analysis.status_code == 200
    assert analysis.json()["totalResponses"] == 1
    assert analysis.json()["questions"][0]["buckets"] == {"Slow": 0, "Fine": 0, "Fast": 1}

    denied = client.get(f"/surveys/{survey_id}/analysis", headers=auth(other_student, UserRole.student))
    assert denied.status_code == 403

    question_id = created["questions"][1]["id"]
    dist = client.get(f"/surveys/{survey_id}/questions/{question_id}/distribution",
                      headers=auth(student, UserRole.student)).json()
    assert dist["average"] == 4.0


def test_recommended(client, created, teacher):
    anonymous = client.get("/surveys/recommended").json()
    assert anonymous["success"] is True
    assert [s["id"] for s in anonymous["data"]] == [created["id"]]
    assert anonymous["data"][0]["priority"] == 2

    own = client.get("/surveys/recommended", headers=auth(teacher, UserRole.teacher)).json()
    assert own["data"][0]["priority"] == 3

    forced = client.get("/surveys/recommended?role=anonymous", headers=auth(teacher, UserRole.teacher)).json()
    assert forced["data"][0]["priority"] == 2

    assert client.get("/surveys/recommended?limit=0").status_code == 400


def test_teacher_roster(client, created, teacher, student):
    client.post(f"/surveys/{created['id']}/responses", json={"answers": answers_for(created)},
                headers=auth(student, UserRole.student))
    headers = auth(teacher, UserRole.teacher)

    students = client.get("/teacher/students", headers=headers).json()
    assert students["success"] is True
    assert [s["studentId"] for s in students["data"]] == [student]

    assert client.delete(f"/teacher/students/{student}", headers=headers).json() == {"success": True}
    assert client.get("/teacher/students", headers=headers).json()["data"] == []
    assert client.delete(f"/teacher/students/{student}", headers=headers).status_code == 404

    readded = client.post("/teacher/students/add-by-survey", json={"surveyId": created["id"]}, headers=headers).json()
    assert [s["studentId"] for s in readded["data"]] == [student]

    mine = client.get("/teacher/surveys", headers=headers).json()
    assert [s["id"] for s in mine] == [created["id"]]


def test_anonymous_caller_cannot_answer_as_a_registered_user(client, created, teacher, student):
    url = f"/surveys/{created['id']}/responses"
    spoofed = client.post(url, json={"respondentId": student, "answers": answers_for(created)})

    assert spoofed.status_code == 401
    assert spoofed.json()["code"] == "UNAUTHENTICATED"
    assert client.get(f"/responses/check/{created['id']}/{student}").json()["hasTaken"] is False
    assert client.get("/teacher/students", headers=auth(teacher, UserRole.teacher)).json()["data"] == []

    own = client.post(url, json={"answers": answers_for(created)}, headers=auth(student, UserRole.student))
    assert own.status_code == 201
    assert own.json()["respondentId"] == student


def test_list_surveys_by_visibility(client, created, teacher, other_teacher):
    private = dict(SURVEY_BODY, title="Draft", accessType="private")
    draft = client.post("/surveys", json=private, headers=auth(teacher, UserRole.teacher)).json()

    anonymous = client.get("/surveys").json()
    assert [s["id"] for s in anonymous] == [created["id"]]
    assert len(anonymous[0]["questions"]) == 3

    own = client.get("/surveys", headers=auth(teacher, UserRole.teacher)).json()
    assert {s["id"] for s in own} == {created["id"], draft["id"]}

    other = client.get("/surveys", headers=auth(other_teacher, UserRole.teacher)).json()
    assert [s["id"] for s in other] == [created["id"]]


def test_student_dashboard(client, created, teacher, student):
    headers = auth(student, UserRole.student)
    before = client.get("/student/surveys", headers=headers).json()
    assert before["success"] is True
    assert before["data"][0]["status"] == "open"
    assert before["data"][0]["isFromTeacher"] is False

    client.post(f"/surveys/{created['id']}/responses", json={"answers": answers_for(created)}, headers=headers)

    entry = client.get("/student/surveys", headers=headers).json()["data"][0]
    assert entry["status"] == "completed"
    assert entry["isFromTeacher"] is True
    assert (entry["answeredQuestions"], entry["totalQuestions"], entry["progress"]) == (2, 3, 67)
    assert entry["ownerName"] == "Ms. Hopper"

    assert client.get("/student/surveys", headers=auth(teacher, UserRole.teacher)).status_code == 403
    assert client.get("/student/surveys").status_code == 401
