# app/routers/responses.py
from fastapi import APIRouter, Depends

from surveyhub.app.schemas.response import ParticipationOut
from surveyhub.app.services.response_collector import ResponseCollector
from surveyhub.db.session import get_store
from surveyhub.db.store import EntityStore

router = APIRouter(tags=["responses"])


@router.get("/responses/check/{survey_id}/{respondent_id}", response_model=ParticipationOut)
def check_participation(survey_id: str, respondent_id: str, store: EntityStore = Depends(get_store)):
    """Whether the respondent already answered the survey, and when."""
    submitted_at = ResponseCollector(store).submitted_at(survey_id, respondent_id)
    return ParticipationOut(has_taken=submitted_at is not None, submitted_at=submitted_at)
