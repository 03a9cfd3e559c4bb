from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ftz_outbound.api.deps.request_identity import get_request_email
from ftz_outbound.core.exceptions import OutboundWorkflowError
from ftz_outbound.db.session import get_db
from ftz_outbound.schemas.entry_summary import (
    DroppedItem,
    EntrySummaryBuildResponse,
    EntrySummaryDetail,
    EntrySummaryHeader,
    FilingStatusUpdate,
    LineItemUpdate,
)
from ftz_outbound.services.entry_summary_builder import EntryBuildResult, EntrySummaryBuilder
from ftz_outbound.services.outbound_engine import OutboundComplianceEngine

router = APIRouter()


def _raise_workflow_error(exc: OutboundWorkflowError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


def to_build_response(result: EntryBuildResult) -> EntrySummaryBuildResponse:
    entry_summary = result.entry_summary
    totals = entry_summary.grand_totals
    return EntrySummaryBuildResponse(
        entry_summary_id=entry_summary.id,
        entry_number=entry_summary.entry_number,
        line_items_created=result.line_items_created,
        total_entered_value=totals.total_entered_value,
        total_duties=totals.grand_total_duty_amount,
        estimated_total_amount=totals.estimated_total_amount,
        dropped_items=[
            DroppedItem(item_number=d.item_number, part_id=d.part_id, reason=d.reason)
            for d in result.dropped_items
        ],
        preshipments_included=result.preshipments_included,
    )


@router.get("", response_model=List[EntrySummaryHeader])
def list_entry_summaries(
    filing_status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    return EntrySummaryBuilder(db).list_by_status(filing_status)


@router.post(
    "/from-preshipment/{preshipment_id}",
    response_model=EntrySummaryBuildResponse,
    status_code=status.HTTP_201_CREATED,
)
def build_from_preshipment(
    preshipment_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    result = OutboundComplianceEngine(db).build_entry_summary_from_preshipment(
        preshipment_id, user_email=user_email
    )
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.to_detail())
    return to_build_response(result.data)


@router.get("/by-number/{entry_number}", response_model=EntrySummaryDetail)
def get_by_entry_number(entry_number: str, db: Session = Depends(get_db)):
    try:
        return EntrySummaryBuilder(db).get_with_details(entry_number=entry_number)
    except OutboundWorkflowError as exc:
        _raise_workflow_error(exc)


@router.get("/{entry_summary_id}", response_model=EntrySummaryDetail)
def get_entry_summary(entry_summary_id: int, db: Session = Depends(get_db)):
    try:
        return EntrySummaryBuilder(db).get_with_details(entry_summary_id)
    except OutboundWorkflowError as exc:
        _raise_workflow_error(exc)


@router.patch("/{entry_summary_id}/filing-status", response_model=EntrySummaryDetail)
def update_filing_status(
    entry_summary_id: int,
    payload: FilingStatusUpdate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    builder = EntrySummaryBuilder(db)
    try:
        builder.update_filing_status(
            entry_summary_id,
            payload.filing_status,
            response_message=payload.ace_response_message,
            user_email=user_email,
        )
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return builder.get_with_details(entry_summary_id)


@router.patch("/{entry_summary_id}/line-items/{line_number}", response_model=EntrySummaryDetail)
def update_line_item(
    entry_summary_id: int,
    line_number: int,
    payload: LineItemUpdate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    builder = EntrySummaryBuilder(db)
    try:
        builder.update_line_item(
            entry_summary_id,
            line_number,
            payload.model_dump(exclude_unset=True),
            user_email=user_email,
        )
        db.commit()
    except OutboundWorkflowError as exc:
        db.rollback()
        _raise_workflow_error(exc)
    return builder.get_with_details(entry_summary_id)
