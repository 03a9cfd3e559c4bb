from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ftz_outbound.core.exceptions import PersistenceError, not_found
from ftz_outbound.core.flow_logging import flow_info
from ftz_outbound.models.master_data import Customer
from ftz_outbound.models.preshipment import Preshipment, PreshipmentItem, PreshipmentStageAudit
from ftz_outbound.schemas.preshipment import PreshipmentCreate
from ftz_outbound.services.stage_transition import PreshipmentStage, validate_transition

logger = logging.getLogger(__name__)


def sanitize_input(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().replace("<", "").replace(">", "")


class PreshipmentService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _now() -> datetime:
        return datetime.utcnow()

    def create_preshipment(self, payload: PreshipmentCreate, user_email: str) -> Preshipment:
        """New preshipments always start in Planning."""
        customer = self.db.query(Customer).filter(Customer.id == payload.customer_id).first()
        if customer is None:
            raise not_found("Customer", payload.customer_id)

        header_data = payload.model_dump(exclude={"items"})
        header = Preshipment(
            **header_data,
            stage=PreshipmentStage.PLANNING.value,
            entry_summary_status="NOT_PREPARED",
            created_by=user_email,
            last_changed_by=user_email,
        )
        for index, item_in in enumerate(payload.items, start=1):
            item_data = item_in.model_dump()
            if item_data.get("total_value") is None and item_data.get("unit_value") is not None:
                item_data["total_value"] = Decimal(item_data["unit_value"]) * Decimal(item_data["quantity"])
            header.items.append(PreshipmentItem(item_number=index, **item_data))

        try:
            tx_ctx = self.db.begin_nested() if self.db.in_transaction() else self.db.begin()
            with tx_ctx:
                self.db.add(header)
                self.db.flush()
        except IntegrityError as exc:
            raise PersistenceError(
                code="DuplicateShipmentId",
                message=f"Preshipment '{payload.shipment_id}' already exists",
                status_code=409,
                details={"shipment_id": payload.shipment_id},
            ) from exc

        flow_info(
            logger,
            "Preshipment created shipment_id=%s items=%s user=%s",
            header.shipment_id,
            len(header.items),
            user_email,
            category="staging",
        )
        return header

    def get_preshipment(self, preshipment_id: int) -> Preshipment:
        preshipment = (
            self.db.query(Preshipment)
            .options(selectinload(Preshipment.items))
            .filter(Preshipment.id == preshipment_id)
            .first()
        )
        if preshipment is None:
            raise not_found("Preshipment", preshipment_id)
        return preshipment

    def get_by_shipment_id(self, shipment_id: str, *, for_update: bool = False) -> Preshipment:
        query = self.db.query(Preshipment).filter(Preshipment.shipment_id == shipment_id)
        if for_update:
            query = query.with_for_update()
        preshipment = query.first()
        if preshipment is None:
            raise not_found("Preshipment", shipment_id)
        return preshipment

    def list_preshipments(self, stage: str | None = None, limit: int = 100, offset: int = 0) -> list[Preshipment]:
        query = self.db.query(Preshipment)
        if stage:
            query = query.filter(Preshipment.stage == stage)
        return query.order_by(Preshipment.id.desc()).offset(offset).limit(limit).all()

    def transition_stage(
        self,
        shipment_id: str,
        target_stage: str,
        *,
        user_email: str,
        staging_location: str | None = None,
        staging_notes: str | None = None,
        staged_by: str | None = None,
    ) -> Preshipment:
        """
        Staging-path stage change along the transition graph. Staged to Shipped
        is allowed here; it stamps shipped_at but records no driver signature.
        """
        preshipment = self.get_by_shipment_id(shipment_id, for_update=True)
        current = preshipment.stage
        target = validate_transition(current, target_stage)

        now = self._now()
        if staging_location is not None:
            preshipment.staging_location = sanitize_input(staging_location)
        if staging_notes is not None:
            preshipment.staging_notes = sanitize_input(staging_notes)
        preshipment.staged_by = sanitize_input(staged_by) or user_email

        if current == target.value:
            preshipment.mark_changed(user_email)
            self.db.flush()
            return preshipment

        preshipment.stage = target.value
        if target == PreshipmentStage.STAGED:
            preshipment.staged_at = now
        elif target == PreshipmentStage.READY_TO_SHIP:
            preshipment.ready_at = now
        elif target == PreshipmentStage.SHIPPED:
            preshipment.shipped_at = now
        preshipment.mark_changed(user_email)

        self.db.add(
            PreshipmentStageAudit(
                preshipment_id=preshipment.id,
                from_stage=current,
                to_stage=target.value,
                changed_at=now,
                changed_by=user_email,
            )
        )
        self.db.flush()

        flow_info(
            logger,
            "Stage transition shipment_id=%s from=%s to=%s user=%s",
            shipment_id,
            current,
            target.value,
            user_email,
            category="staging",
        )
        return preshipment

    def stage_history(self, shipment_id: str) -> list[PreshipmentStageAudit]:
        preshipment = self.get_by_shipment_id(shipment_id)
        return list(preshipment.stage_history)
