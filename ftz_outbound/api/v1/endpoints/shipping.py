from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ftz_outbound.api.deps.request_identity import get_request_email
from ftz_outbound.core.exceptions import OutboundWorkflowError
from ftz_outbound.db.session import get_db
from ftz_outbound.schemas.preshipment import (
    DriverSignoffRequest,
    LotDecrement,
    Preshipment,
    PreshipmentSummary,
    SignoffResponse,
    StageTransitionRequest,
)
from ftz_outbound.services.outbound_engine import OperationResult, OutboundComplianceEngine
from ftz_outbound.services.preshipment_service import PreshipmentService
from ftz_outbound.services.stage_transition import parse_stage

router = APIRouter()


def _raise_operation_failure(result: OperationResult) -> None:
    raise HTTPException(status_code=result.status_code, detail=result.to_detail())


@router.get("/stage/{stage}", response_model=List[PreshipmentSummary])
def list_by_stage(stage: str, db: Session = Depends(get_db)):
    try:
        stage_value = parse_stage(stage).value
    except OutboundWorkflowError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())
    return PreshipmentService(db).list_preshipments(stage=stage_value)


@router.put("/{shipment_id}/staging", response_model=Preshipment)
def update_staging(
    shipment_id: str,
    payload: StageTransitionRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    """Move a preshipment along the staging workflow, Staged to Shipped included."""
    engine = OutboundComplianceEngine(db)
    result = engine.transition_stage(
        shipment_id,
        payload.target_stage,
        user_email=user_email,
        staging_location=payload.staging_location,
        staging_notes=payload.staging_notes,
        staged_by=payload.staged_by,
    )
    if not result.success:
        _raise_operation_failure(result)
    return result.data


@router.post("/{shipment_id}/signoff", response_model=SignoffResponse)
def driver_signoff(
    shipment_id: str,
    payload: DriverSignoffRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    """Driver sign-off: marks the shipment Shipped and decrements lot inventory."""
    engine = OutboundComplianceEngine(db)
    result = engine.finalize_shipment(shipment_id, payload, user_email=user_email)
    if not result.success:
        _raise_operation_failure(result)

    finalization = result.data
    return SignoffResponse(
        preshipment=Preshipment.model_validate(finalization.preshipment),
        inventory_updated=finalization.inventory_updated,
        completion_recorded=finalization.completion_recorded,
        lot_decrements=[
            LotDecrement(
                lot_id=d.lot_id,
                previous_quantity=d.previous_quantity,
                shipped_quantity=d.shipped_quantity,
                new_quantity=d.new_quantity,
            )
            for d in finalization.lot_decrements
        ],
        warnings=finalization.warnings,
    )
