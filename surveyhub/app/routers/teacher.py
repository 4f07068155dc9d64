# app/routers/teacher.py
from typing import List

from fastapi import APIRouter, Depends

from surveyhub.app.core.security import Principal, require_teacher
from surveyhub.app.schemas.roster import AddBySurveyIn, LinkedStudentOut, StudentListOut
from surveyhub.app.schemas.survey import SurveyOut
from surveyhub.app.services.roster import Roster
from surveyhub.app.services.survey_writer import SurveyWriteCoordinator
from surveyhub.db.session import get_store
from surveyhub.db.store import EntityStore

router = APIRouter(prefix="/teacher", tags=["teacher"])


@router.get("/surveys", response_model=List[SurveyOut])
def my_surveys(principal: Principal = Depends(require_teacher), store: EntityStore = Depends(get_store)):
    return [SurveyOut.from_survey(s) for s in SurveyWriteCoordinator(store).list_owned(principal.user_id)]


@router.get("/students", response_model=StudentListOut)
def my_students(principal: Principal = Depends(require_teacher), store: EntityStore = Depends(get_store)):
    students = Roster(store).list_students(principal.user_id)
    return StudentListOut(data=[LinkedStudentOut.from_link(s) for s in students])


@router.post("/students/add-by-survey", response_model=StudentListOut)
def add_students_by_survey(payload: AddBySurveyIn, principal: Principal = Depends(require_teacher),
                           store: EntityStore = Depends(get_store)):
    added = Roster(store).add_participants(principal.user_id, payload.survey_id)
    return StudentListOut(data=[LinkedStudentOut.from_link(s) for s in added])


@router.delete("/students/{student_id}")
def remove_student(student_id: str, principal: Principal = Depends(require_teacher),
                   store: EntityStore = Depends(get_store)):
    Roster(store).remove_student(principal.user_id, student_id)
    return {"success": True}
