from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ftz_outbound.api.deps.request_identity import get_request_email
from ftz_outbound.core.exceptions import OutboundWorkflowError
from ftz_outbound.db.session import get_db
from ftz_outbound.schemas.preshipment import (
    PRESHIPMENT_TYPES,
    Preshipment,
    PreshipmentCreate,
    PreshipmentSummary,
    StageAudit,
    StageReference,
)
from ftz_outbound.services.preshipment_service import PreshipmentService
from ftz_outbound.services.stage_transition import PreshipmentStage, next_stages

router = APIRouter()


def _raise_workflow_error(exc: OutboundWorkflowError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.get("", response_model=List[PreshipmentSummary])
def list_preshipments(
    stage: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return PreshipmentService(db).list_preshipments(stage=stage, limit=limit, offset=offset)


@router.post("", response_model=Preshipment, status_code=status.HTTP_201_CREATED)
def create_preshipment(
    payload: PreshipmentCreate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = PreshipmentService(db)
    try:
        preshipment = service.create_preshipment(payload, user_email)
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return service.get_preshipment(preshipment.id)


@router.get("/reference/stages", response_model=List[StageReference])
def stage_reference():
    return [
        StageReference(stage=stage.value, next_stages=next_stages(stage))
        for stage in PreshipmentStage
    ]


@router.get("/reference/types", response_model=List[str])
def type_reference():
    return list(PRESHIPMENT_TYPES)


@router.get("/{preshipment_id}", response_model=Preshipment)
def get_preshipment(preshipment_id: int, db: Session = Depends(get_db)):
    try:
        return PreshipmentService(db).get_preshipment(preshipment_id)
    except OutboundWorkflowError as exc:
        _raise_workflow_error(exc)


@router.get("/{preshipment_id}/history", response_model=List[StageAudit])
def get_stage_history(preshipment_id: int, db: Session = Depends(get_db)):
    service = PreshipmentService(db)
    try:
        preshipment = service.get_preshipment(preshipment_id)
    except OutboundWorkflowError as exc:
        _raise_workflow_error(exc)
    return service.stage_history(preshipment.shipment_id)
