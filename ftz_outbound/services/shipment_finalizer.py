from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ftz_outbound.core.exceptions import invalid_stage_for_signoff, missing_signoff_fields
from ftz_outbound.core.flow_logging import flow_info
from ftz_outbound.models.master_data import InventoryLot, InventoryTransaction
from ftz_outbound.models.preshipment import Preshipment, PreshipmentStageAudit, ShipmentCompletion
from ftz_outbound.schemas.preshipment import DriverSignoffRequest
from ftz_outbound.services.preshipment_service import PreshipmentService, sanitize_input
from ftz_outbound.services.stage_transition import SIGNOFF_STAGES, PreshipmentStage, parse_stage

logger = logging.getLogger(__name__)

REQUIRED_SIGNOFF_FIELDS = ("driver_name", "driver_license_number", "license_plate_number")
LOT_EXHAUSTED_STATUS = "Shipped Out"
SHIPMENT_TRANSACTION_TYPE = "Shipment"


@dataclass
class LotDecrement:
    lot_id: str
    previous_quantity: Decimal
    shipped_quantity: Decimal
    new_quantity: Decimal


@dataclass
class FinalizationResult:
    preshipment: Preshipment
    lot_decrements: list[LotDecrement] = field(default_factory=list)
    inventory_updated: bool = True
    completion_recorded: bool = True
    warnings: list[str] = field(default_factory=list)


def missing_signer_fields(signoff: DriverSignoffRequest) -> list[str]:
    missing = []
    for name in REQUIRED_SIGNOFF_FIELDS:
        value = getattr(signoff, name, None)
        if value is None or not value.strip():
            missing.append(name)
    return missing


class ShipmentFinalizer:
    """
    Driver sign-off: the only way into Shipped. Inventory decrement and the
    completion record run after the stage write, each in its own savepoint;
    their failures are logged and never undo the sign-off.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _now() -> datetime:
        return datetime.utcnow()

    def finalize(
        self,
        shipment_id: str,
        signoff: DriverSignoffRequest,
        *,
        user_email: str,
    ) -> FinalizationResult:
        missing = missing_signer_fields(signoff)
        if missing:
            raise missing_signoff_fields(missing)

        preshipment = PreshipmentService(self.db).get_by_shipment_id(shipment_id, for_update=True)
        current_stage = parse_stage(preshipment.stage)
        if current_stage not in SIGNOFF_STAGES:
            raise invalid_stage_for_signoff(preshipment.stage)

        now = self._now()
        signature = None
        if signoff.signature_data is not None:
            signature = {
                "signature_image": signoff.signature_data.image,
                "signature_timestamp": now.isoformat(),
                "signature_method": signoff.signature_data.method or "digital",
            }

        preshipment.stage = PreshipmentStage.SHIPPED.value
        preshipment.shipped_at = now
        preshipment.signed_off_by = user_email
        preshipment.driver_name = sanitize_input(signoff.driver_name)
        preshipment.driver_license_number = sanitize_input(signoff.driver_license_number)
        preshipment.license_plate_number = sanitize_input(signoff.license_plate_number)
        if signoff.carrier_name:
            preshipment.carrier_name = sanitize_input(signoff.carrier_name)
        if signoff.tracking_number:
            preshipment.tracking_number = sanitize_input(signoff.tracking_number)
        preshipment.driver_notes = sanitize_input(signoff.driver_notes) if signoff.driver_notes else None
        preshipment.signature_data = signature
        preshipment.mark_changed(user_email)
        self.db.add(
            PreshipmentStageAudit(
                preshipment_id=preshipment.id,
                from_stage=current_stage.value,
                to_stage=PreshipmentStage.SHIPPED.value,
                changed_at=now,
                changed_by=user_email,
            )
        )
        self.db.flush()

        flow_info(
            logger,
            "Driver signoff recorded shipment_id=%s from=%s driver=%s user=%s",
            shipment_id,
            current_stage.value,
            preshipment.driver_name,
            user_email,
            category="signoff",
        )

        result = FinalizationResult(preshipment=preshipment)

        savepoint = self.db.begin_nested()
        try:
            result.lot_decrements = self._decrement_inventory(preshipment, user_email, now)
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            result.inventory_updated = False
            result.warnings.append(f"Inventory update failed: {exc}")
            logger.warning(
                "Inventory decrement failed after signoff shipment_id=%s error=%s",
                shipment_id,
                exc,
            )

        savepoint = self.db.begin_nested()
        try:
            self._record_completion(preshipment, user_email, now)
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            result.completion_recorded = False
            result.warnings.append(f"Completion record failed: {exc}")
            logger.warning(
                "Completion record failed after signoff shipment_id=%s error=%s",
                shipment_id,
                exc,
            )

        return result

    def _decrement_inventory(
        self,
        preshipment: Preshipment,
        user_email: str,
        now: datetime,
    ) -> list[LotDecrement]:
        decrements: list[LotDecrement] = []
        for item in preshipment.items:
            if not item.lot_id:
                continue
            lot = (
                self.db.query(InventoryLot)
                .filter(InventoryLot.id == item.lot_id)
                .with_for_update()
                .first()
            )
            if lot is None:
                logger.warning(
                    "Inventory lot not found shipment_id=%s lot_id=%s",
                    preshipment.shipment_id,
                    item.lot_id,
                )
                continue

            previous = Decimal(lot.current_quantity or 0)
            shipped = Decimal(item.quantity or 0)
            new_quantity = max(Decimal("0"), previous - shipped)

            lot.current_quantity = new_quantity
            lot.last_shipped_at = now
            if new_quantity == 0:
                lot.status = LOT_EXHAUSTED_STATUS

            self.db.add(
                InventoryTransaction(
                    lot_id=lot.id,
                    transaction_type=SHIPMENT_TRANSACTION_TYPE,
                    quantity_change=-shipped,
                    resulting_quantity=new_quantity,
                    reference_id=preshipment.shipment_id,
                    created_at=now,
                    created_by=user_email,
                )
            )
            decrements.append(
                LotDecrement(
                    lot_id=lot.id,
                    previous_quantity=previous,
                    shipped_quantity=shipped,
                    new_quantity=new_quantity,
                )
            )
        self.db.flush()

        if decrements:
            flow_info(
                logger,
                "Inventory decremented shipment_id=%s lots=%s",
                preshipment.shipment_id,
                ",".join(d.lot_id for d in decrements),
                category="signoff",
            )
        return decrements

    def _record_completion(self, preshipment: Preshipment, user_email: str, now: datetime) -> None:
        self.db.add(
            ShipmentCompletion(
                preshipment_id=preshipment.id,
                shipment_id=preshipment.shipment_id,
                completed_at=now,
                driver_name=preshipment.driver_name,
                driver_license=preshipment.driver_license_number,
                license_plate=preshipment.license_plate_number,
                completed_by=user_email,
            )
        )
        self.db.flush()
