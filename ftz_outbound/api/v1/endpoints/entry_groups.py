from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ftz_outbound.api.deps.request_identity import get_request_email
from ftz_outbound.api.v1.endpoints.entry_summaries import to_build_response
from ftz_outbound.core.exceptions import OutboundWorkflowError
from ftz_outbound.db.session import get_db
from ftz_outbound.schemas.entry_group import (
    EntryGroup,
    EntryGroupCreate,
    EntryGroupMember,
    EntryGroupMemberAdd,
    EntryGroupStatusUpdate,
)
from ftz_outbound.schemas.entry_summary import EntrySummaryBuildResponse
from ftz_outbound.services.entry_group_service import EntrySummaryGroupService
from ftz_outbound.services.outbound_engine import OutboundComplianceEngine

router = APIRouter()


def _raise_workflow_error(exc: OutboundWorkflowError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.get("", response_model=List[EntryGroup])
def list_groups(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    return EntrySummaryGroupService(db).list_groups(status_filter)


@router.post("", response_model=EntryGroup, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: EntryGroupCreate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = EntrySummaryGroupService(db)
    group = service.create_group(payload, user_email)
    db.commit()
    return service.get_group(group.id)


@router.get("/{group_id}", response_model=EntryGroup)
def get_group(group_id: int, db: Session = Depends(get_db)):
    try:
        return EntrySummaryGroupService(db).get_group(group_id)
    except OutboundWorkflowError as exc:
        _raise_workflow_error(exc)


@router.post(
    "/{group_id}/preshipments",
    response_model=EntryGroupMember,
    status_code=status.HTTP_201_CREATED,
)
def add_preshipment(
    group_id: int,
    payload: EntryGroupMemberAdd,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = EntrySummaryGroupService(db)
    try:
        member = service.add_preshipment(
            group_id,
            payload.preshipment_id,
            user_email=user_email,
            assignment_notes=payload.assignment_notes,
        )
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return member


@router.delete("/{group_id}/preshipments/{preshipment_id}", response_model=EntryGroup)
def remove_preshipment(
    group_id: int,
    preshipment_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = EntrySummaryGroupService(db)
    try:
        service.remove_preshipment(group_id, preshipment_id, user_email=user_email)
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return service.get_group(group_id)


@router.patch("/{group_id}/status", response_model=EntryGroup)
def update_group_status(
    group_id: int,
    payload: EntryGroupStatusUpdate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = EntrySummaryGroupService(db)
    try:
        service.update_status(group_id, payload.status, user_email=user_email)
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return service.get_group(group_id)


@router.post(
    "/{group_id}/entry-summary",
    response_model=EntrySummaryBuildResponse,
    status_code=status.HTTP_201_CREATED,
)
def build_group_entry_summary(
    group_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    result = OutboundComplianceEngine(db).build_entry_summary_from_group(group_id, user_email=user_email)
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.to_detail())
    return to_build_response(result.data)
