"""Self-assessments."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import services
from ..auth import AuthContext, get_current_user, get_db
from ..schemas import (
    MessageResponse,
    PathId,
    SelfAssessmentCreate,
    SelfAssessmentOut,
    SelfAssessmentUpdate,
)

router = APIRouter(prefix="/api/assessments", tags=["assessments"])


@router.get("", response_model=List[SelfAssessmentOut])
def my_assessments(
    ctx: AuthContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    return services.list_assessments(db, ctx.user_id)


@router.get("/user/{user_id}", response_model=List[SelfAssessmentOut])
def assessments_for_user(
    user_id: PathId,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    services.ensure_user_access(db, ctx.user, user_id)
    return services.list_assessments(db, user_id)


@router.get("/{assessment_id}", response_model=SelfAssessmentOut)
def get_assessment(
    assessment_id: PathId,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.get_assessment(db, ctx.user, assessment_id)


@router.post("", response_model=SelfAssessmentOut, status_code=201)
def create_assessment(
    payload: SelfAssessmentCreate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.create_assessment(db, ctx.user, payload)


@router.put("/{assessment_id}", response_model=SelfAssessmentOut)
def update_assessment(
    assessment_id: PathId,
    payload: SelfAssessmentUpdate,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return services.update_assessment(db, ctx.user, assessment_id, payload)


@router.delete("/{assessment_id}", response_model=MessageResponse)
def delete_assessment(
    assessment_id: PathId,
    ctx: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    services.delete_assessment(db, ctx.user, assessment_id)
    return MessageResponse(message="Self-assessment deleted successfully")
