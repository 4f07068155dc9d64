# app/routers/surveys.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response

from surveyhub.app.core.config import settings
from surveyhub.app.core.security import (
    Principal, get_current_principal, get_optional_principal, require_teacher,
)
from surveyhub.app.schemas.analytics import (
    DistributionOut, RecommendedOut, RecommendedSurveyOut, SurveyAnalysisOut,
)
from surveyhub.app.schemas.response import (
    AnswerOut, ResolvedAnswerOut, ResponseDetailOut, ResponseOut, SubmitResponseIn,
)
from surveyhub.app.schemas.survey import SurveyIn, SurveyOut
from surveyhub.app.services.analytics import AnalyticsAggregator
from surveyhub.app.services.answer_values import to_plain
from surveyhub.app.services.catalogue import SurveyCatalogue
from surveyhub.app.services.export import ResponseExporter
from surveyhub.app.services.response_collector import ResponseCollector
from surveyhub.app.services.survey_writer import SurveyWriteCoordinator
from surveyhub.db.session import get_store
from surveyhub.db.store import EntityStore

router = APIRouter(tags=["surveys"])


@router.post("/surveys", response_model=SurveyOut, status_code=status.HTTP_201_CREATED)
def create_survey(payload: SurveyIn, principal: Principal = Depends(require_teacher),
                  store: EntityStore = Depends(get_store)):
    survey = SurveyWriteCoordinator(store).create_survey(
        owner_id=principal.user_id,
        title=payload.title,
        description=payload.description,
        visibility=payload.resolve_visibility(),
        questions=payload.questions,
    )
    return SurveyOut.from_survey(survey)


@router.get("/surveys", response_model=List[SurveyOut])
def list_surveys(principal: Optional[Principal] = Depends(get_optional_principal),
                 store: EntityStore = Depends(get_store)):
    viewer_role, viewer_id = (principal.role, principal.user_id) if principal else (None, None)
    return [SurveyOut.from_survey(s) for s in SurveyCatalogue(store).list_visible(viewer_role, viewer_id)]


# declared before /surveys/{survey_id} so "recommended" is not taken for an id
@router.get("/surveys/recommended", response_model=RecommendedOut)
def recommended_surveys(
    role: Optional[str] = Query(None),
    limit: int = Query(settings.RECOMMENDATION_LIMIT, ge=1, le=settings.RECOMMENDATION_MAX_LIMIT),
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: EntityStore = Depends(get_store),
):
    if principal is None or role == "anonymous":
        viewer_role, viewer_id = None, None
    else:
        viewer_role, viewer_id = principal.role, principal.user_id

    candidates = AnalyticsAggregator(store).recommend(viewer_role, viewer_id, limit=limit)
    return RecommendedOut(data=[RecommendedSurveyOut.from_candidate(c) for c in candidates])


@router.get("/surveys/{survey_id}", response_model=SurveyOut)
def get_survey(survey_id: str, store: EntityStore = Depends(get_store)):
    return SurveyOut.from_survey(SurveyWriteCoordinator(store).get_survey(survey_id))


@router.put("/surveys/{survey_id}", response_model=SurveyOut)
def update_survey(survey_id: str, payload: SurveyIn, principal: Principal = Depends(require_teacher),
                  store: EntityStore = Depends(get_store)):
    survey = SurveyWriteCoordinator(store).update_survey(
        survey_id=survey_id,
        owner_id=principal.user_id,
        title=payload.title,
        description=payload.description,
        visibility=payload.resolve_visibility(),
        questions=payload.questions,
    )
    return SurveyOut.from_survey(survey)


@router.delete("/surveys/{survey_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_survey(survey_id: str, principal: Principal = Depends(require_teacher),
                  store: EntityStore = Depends(get_store)):
    SurveyWriteCoordinator(store).delete_survey(survey_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/surveys/{survey_id}/responses", response_model=ResponseOut, status_code=status.HTTP_201_CREATED)
def submit_response(survey_id: str, payload: SubmitResponseIn, request: Request,
                    principal: Optional[Principal] = Depends(get_optional_principal),
                    store: EntityStore = Depends(get_store)):
    # a signed-in respondent is always identified by the token, not the body
    respondent_id = principal.user_id if principal else payload.respondent_id
    ip_address = request.client.host if request.client else None

    submission = ResponseCollector(store).submit_response(
        survey_id, respondent_id, payload.answers, ip_address=ip_address, authenticated=principal is not None,
    )
    return ResponseOut(
        id=submission.response_id,
        survey_id=submission.survey_id,
        respondent_id=submission.respondent_id,
        submitted_at=submission.submitted_at,
        answers=[AnswerOut(question_id=a.question_id, value=to_plain(a.value)) for a in submission.answers],
    )


@router.get("/surveys/{survey_id}/responses", response_model=List[ResponseDetailOut])
def list_responses(survey_id: str, principal: Principal = Depends(get_current_principal),
                   store: EntityStore = Depends(get_store)):
    submissions = ResponseCollector(store).list_responses(survey_id, principal.user_id)
    return [
        ResponseDetailOut(
            id=s.response_id,
            survey_id=s.survey_id,
            respondent_id=s.respondent_id,
            respondent_name=s.respondent_name,
            submitted_at=s.submitted_at,
            answers=[
                ResolvedAnswerOut(
                    question_id=a.question_id,
                    value=to_plain(a.value),
                    question_text=a.question_text,
                    question_type=a.question_type.value,
                )
                for a in s.answers
            ],
        )
        for s in submissions
    ]


@router.get("/surveys/{survey_id}/responses/export")
def export_responses(survey_id: str, principal: Principal = Depends(get_current_principal),
                     store: EntityStore = Depends(get_store)):
    content = ResponseExporter(store).export_to_csv(survey_id, principal.user_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="survey_{survey_id}_responses.csv"'},
    )


@router.get("/surveys/{survey_id}/analysis", response_model=SurveyAnalysisOut)
def analyze_survey(survey_id: str, principal: Principal = Depends(get_current_principal),
                   store: EntityStore = Depends(get_store)):
    analysis = AnalyticsAggregator(store).analyze(survey_id, principal.user_id, principal.role)
    return SurveyAnalysisOut.from_analysis(analysis)


@router.get("/surveys/{survey_id}/questions/{question_id}/distribution", response_model=DistributionOut)
def question_distribution(survey_id: str, question_id: str,
                          principal: Principal = Depends(get_current_principal),
                          store: EntityStore = Depends(get_store)):
    distribution = AnalyticsAggregator(store).answer_distribution(
        survey_id, question_id, viewer_id=principal.user_id, viewer_role=principal.role,
    )
    return DistributionOut.from_distribution(distribution)
