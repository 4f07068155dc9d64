# app/routers/student.py
from fastapi import APIRouter, Depends

from surveyhub.app.core.security import Principal, require_student
from surveyhub.app.schemas.student import DashboardOut, DashboardSurveyOut
from surveyhub.app.services.catalogue import SurveyCatalogue
from surveyhub.db.session import get_store
from surveyhub.db.store import EntityStore

router = APIRouter(prefix="/student", tags=["student"])


@router.get("/surveys", response_model=DashboardOut)
def my_surveys(principal: Principal = Depends(require_student), store: EntityStore = Depends(get_store)):
    entries = SurveyCatalogue(store).student_dashboard(principal.user_id)
    return DashboardOut(data=[DashboardSurveyOut.from_entry(e) for e in entries])
