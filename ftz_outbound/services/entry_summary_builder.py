from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
import logging
import re

from sqlalchemy.orm import Session, selectinload

from ftz_outbound.core.config import settings
from ftz_outbound.core.exceptions import (
    OutboundWorkflowError,
    PartialFailure,
    StateError,
    ValidationError,
    entry_requirements_missing,
    invalid_filing_status_change,
    not_found,
    preshipment_already_linked,
    preshipment_in_open_group,
)
from ftz_outbound.core.flow_logging import flow_info
from ftz_outbound.models.entry_group import EntryGroupPreshipment, EntrySummaryGroup
from ftz_outbound.models.entry_summary import EntrySummary, EntrySummaryLineItem, FtzStatusRecord
from ftz_outbound.models.master_data import InventoryLot, Part
from ftz_outbound.models.preshipment import Preshipment, PreshipmentItem
from ftz_outbound.services.grand_totals import GrandTotalsCalculator
from ftz_outbound.services.number_range_get import NumberRangeService

logger = logging.getLogger(__name__)

EMPTY_HTS = "0000.00.0000"
DEFAULT_FTZ_STATUS = "P"
FTZ_STATUS_CODES = frozenset({"P", "N", "D"})
EDITABLE_FILING_STATUSES = frozenset({"DRAFT", "REJECTED"})
FILING_STATUS_TRANSITIONS = {
    "DRAFT": frozenset({"FILED"}),
    "FILED": frozenset({"ACCEPTED", "REJECTED"}),
    "ACCEPTED": frozenset(),
    "REJECTED": frozenset({"DRAFT"}),
}
CLOSED_GROUP_STATUSES = ("filed", "accepted")
GROUP_STATUS_FOR_FILING = {
    "DRAFT": "filed",
    "FILED": "filed",
    "ACCEPTED": "accepted",
    "REJECTED": "rejected",
}
TWO_PLACES = Decimal("0.01")

_NON_DIGITS = re.compile(r"\D")


def format_hts_number(hts_code: str | None) -> str:
    """Canonical ACE form XXXX.XX.XXXX, right-padded with zeros to 10 digits."""
    digits = _NON_DIGITS.sub("", hts_code or "")
    if not digits:
        return EMPTY_HTS
    digits = digits.ljust(10, "0")[:10]
    return f"{digits[:4]}.{digits[4:6]}.{digits[6:10]}"


def money(value) -> Decimal:
    return Decimal(value or 0).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def validate_preshipment_for_entry_creation(preshipment: Preshipment) -> list[str]:
    errors = []
    if not preshipment.filing_district_port:
        errors.append("District/Port of Entry is required")
    if not preshipment.entry_filer_code:
        errors.append("Entry Filer Code is required")
    if not preshipment.importer_of_record_number:
        errors.append("Importer of Record Number is required")
    if not preshipment.customer_id:
        errors.append("Consignee (Customer) is required")
    if not preshipment.items:
        errors.append("At least one line item is required")
    return errors


@dataclass
class DroppedItem:
    item_number: int
    part_id: str | None
    reason: str


@dataclass
class EntryBuildResult:
    entry_summary: EntrySummary
    line_items_created: int
    dropped_items: list[DroppedItem] = field(default_factory=list)
    preshipments_included: int = 1


class EntrySummaryBuilder:
    """
    Single-preshipment entry summaries plus the filing-status and line-item
    maintenance shared by both build paths.
    """

    def __init__(self, db: Session):
        self.db = db
        self.totals = GrandTotalsCalculator(db)

    @staticmethod
    def _now() -> datetime:
        return datetime.utcnow()

    def _load_preshipment(self, preshipment_id: int) -> Preshipment:
        preshipment = (
            self.db.query(Preshipment)
            .options(selectinload(Preshipment.items))
            .filter(Preshipment.id == preshipment_id)
            .first()
        )
        if preshipment is None:
            raise not_found("Preshipment", preshipment_id)
        return preshipment

    def _open_group_for(self, preshipment_id: int) -> EntrySummaryGroup | None:
        return (
            self.db.query(EntrySummaryGroup)
            .join(EntryGroupPreshipment, EntryGroupPreshipment.group_id == EntrySummaryGroup.id)
            .filter(EntryGroupPreshipment.preshipment_id == preshipment_id)
            .filter(EntrySummaryGroup.status.notin_(CLOSED_GROUP_STATUSES))
            .order_by(EntrySummaryGroup.id)
            .first()
        )

    def _resolve_parts(
        self, items: list[PreshipmentItem]
    ) -> tuple[list[tuple[PreshipmentItem, Part]], list[DroppedItem]]:
        part_ids = {item.part_id for item in items if item.part_id}
        parts = {}
        if part_ids:
            parts = {
                part.id: part
                for part in self.db.query(Part).filter(Part.id.in_(sorted(part_ids))).all()
            }

        resolved = []
        dropped = []
        for item in items:
            part = parts.get(item.part_id) if item.part_id else None
            if part is None:
                reason = "part reference missing" if not item.part_id else "part not found"
                dropped.append(DroppedItem(item_number=item.item_number, part_id=item.part_id, reason=reason))
                continue
            resolved.append((item, part))
        return resolved, dropped

    def ftz_status_for_lot(self, lot_id: str | None) -> tuple[str, object]:
        if not lot_id:
            return DEFAULT_FTZ_STATUS, None
        lot = self.db.query(InventoryLot).filter(InventoryLot.id == lot_id).first()
        if lot is None:
            return DEFAULT_FTZ_STATUS, None
        code = (lot.ftz_status or "").strip().upper()
        if code not in FTZ_STATUS_CODES:
            code = DEFAULT_FTZ_STATUS
        return code, lot.admission_date

    def create_line_item(
        self,
        entry_summary: EntrySummary,
        line_number: int,
        item: PreshipmentItem,
        part: Part,
    ) -> EntrySummaryLineItem:
        quantity = Decimal(item.quantity or 0)
        unit_value = money(part.standard_value)
        status_code, filing_date = self.ftz_status_for_lot(item.lot_id)

        line = EntrySummaryLineItem(
            line_number=line_number,
            hts_code=format_hts_number(part.hts_code or item.hts_code),
            country_of_origin=part.country_of_origin or item.country_of_origin or settings.DEFAULT_COUNTRY_OF_ORIGIN,
            commodity_description=part.description,
            quantity=quantity,
            unit_of_measure=item.unit_of_measure or part.unit_of_measure or settings.DEFAULT_UNIT_OF_MEASURE,
            unit_value=unit_value,
            total_value=money(unit_value * quantity),
            duty_rate=Decimal(item.duty_rate or 0),
            duty_amount=money(item.duty_amount),
            part_id=part.id,
            lot_id=item.lot_id,
        )
        line.ftz_status = FtzStatusRecord(
            ftz_line_item_quantity=quantity,
            ftz_merchandise_status_code=status_code,
            privileged_ftz_merchandise_filing_date=filing_date,
        )
        entry_summary.line_items.append(line)
        self.db.flush()
        return line

    def build_from_preshipment(self, preshipment_id: int, *, user_email: str) -> EntryBuildResult:
        """
        Header, line items, FTZ status records and totals are written inside
        one savepoint. Any failure after the header insert rolls the whole set
        back and surfaces as PartialFailure.
        """
        preshipment = self._load_preshipment(preshipment_id)
        if preshipment.entry_summary_id is not None:
            raise preshipment_already_linked(preshipment.id, preshipment.shipment_id, preshipment.entry_number)
        open_group = self._open_group_for(preshipment.id)
        if open_group is not None:
            raise preshipment_in_open_group(preshipment.id, preshipment.shipment_id, open_group.id, open_group.status)

        errors = validate_preshipment_for_entry_creation(preshipment)
        if errors:
            raise entry_requirements_missing(errors)

        resolved, dropped = self._resolve_parts(list(preshipment.items))
        if not resolved:
            raise ValidationError(
                code="NoResolvableItems",
                message="None of the preshipment items reference a known part",
                status_code=422,
                details={"dropped_items": [d.__dict__ for d in dropped]},
            )
        for item in dropped:
            logger.warning(
                "Skipping preshipment item without part shipment_id=%s item=%s part_id=%s reason=%s",
                preshipment.shipment_id,
                item.item_number,
                item.part_id,
                item.reason,
            )

        entry_number = preshipment.entry_number or NumberRangeService.next_entry_number(self.db)

        savepoint = self.db.begin_nested()
        try:
            entry_summary = EntrySummary(
                entry_number=entry_number,
                entry_type_code=preshipment.entry_type_code or settings.DEFAULT_ENTRY_TYPE_CODE,
                summary_filing_action_request_code="A",
                record_district_port_of_entry=preshipment.filing_district_port,
                entry_filer_code=preshipment.entry_filer_code,
                consolidated_summary_indicator="Y" if preshipment.consolidated_entry else "N",
                importer_of_record_number=preshipment.importer_of_record_number,
                consignee_id=preshipment.customer_id,
                date_of_importation=preshipment.date_of_importation,
                foreign_trade_zone_identifier=preshipment.foreign_trade_zone_id or settings.DEFAULT_FTZ_IDENTIFIER,
                bill_of_lading_number=preshipment.bill_of_lading_number,
                voyage_flight_trip_number=preshipment.voyage_flight_trip_number,
                carrier_code=preshipment.carrier_code,
                importing_conveyance_name=preshipment.importing_conveyance_name,
                mode_of_transportation=preshipment.mode_of_transportation,
                port_of_unlading=preshipment.port_of_unlading,
                manufacturer_name=preshipment.manufacturer_name,
                manufacturer_address=preshipment.manufacturer_address,
                seller_name=preshipment.seller_name,
                seller_address=preshipment.seller_address,
                bond_type_code=preshipment.bond_type_code,
                surety_company_code=preshipment.surety_company_code,
                filing_status="DRAFT",
                preshipment_id=preshipment.id,
                created_by=user_email,
                last_changed_by=user_email,
            )
            self.db.add(entry_summary)
            self.db.flush()

            for line_number, (item, part) in enumerate(resolved, start=1):
                self.create_line_item(entry_summary, line_number, item, part)

            self.totals.recalculate(entry_summary)

            preshipment.entry_summary_id = entry_summary.id
            preshipment.entry_number = entry_number
            preshipment.entry_summary_status = "DRAFT"
            preshipment.mark_changed(user_email)
            self.db.flush()
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            logger.warning(
                "Entry summary build rolled back shipment_id=%s entry_number=%s error=%s",
                preshipment.shipment_id,
                entry_number,
                exc,
            )
            if isinstance(exc, OutboundWorkflowError):
                raise
            raise PartialFailure(
                code="EntrySummaryBuildFailed",
                message=f"Entry summary {entry_number} could not be completed and was rolled back: {exc}",
                status_code=500,
                details={"entry_number": entry_number, "preshipment_id": preshipment_id},
            ) from exc

        flow_info(
            logger,
            "Entry summary built entry_number=%s preshipment_id=%s lines=%s dropped=%s user=%s",
            entry_number,
            preshipment_id,
            len(resolved),
            len(dropped),
            user_email,
            category="entry_summary",
        )
        return EntryBuildResult(
            entry_summary=entry_summary,
            line_items_created=len(resolved),
            dropped_items=dropped,
        )

    def get_with_details(
        self,
        entry_summary_id: int | None = None,
        *,
        entry_number: str | None = None,
    ) -> EntrySummary:
        query = self.db.query(EntrySummary).options(
            selectinload(EntrySummary.line_items).selectinload(EntrySummaryLineItem.ftz_status),
            selectinload(EntrySummary.grand_totals),
        )
        if entry_summary_id is not None:
            entry_summary = query.filter(EntrySummary.id == entry_summary_id).first()
            reference = entry_summary_id
        elif entry_number:
            entry_summary = query.filter(EntrySummary.entry_number == entry_number).first()
            reference = entry_number
        else:
            raise ValidationError(
                code="MissingReference",
                message="Either entry_summary_id or entry_number is required",
                status_code=422,
            )
        if entry_summary is None:
            raise not_found("Entry summary", reference)
        return entry_summary

    def _owning_group(self, entry_summary: EntrySummary) -> EntrySummaryGroup | None:
        if entry_summary.group_id is None:
            return None
        group = self.db.get(EntrySummaryGroup, entry_summary.group_id)
        if group is None or group.entry_number != entry_summary.entry_number:
            return None
        return group

    def list_by_status(self, filing_status: str | None = None) -> list[EntrySummary]:
        query = self.db.query(EntrySummary)
        if filing_status:
            query = query.filter(EntrySummary.filing_status == filing_status.upper())
        return query.order_by(EntrySummary.id.desc()).all()

    def update_filing_status(
        self,
        entry_summary_id: int,
        status: str,
        *,
        response_message: str | None = None,
        user_email: str,
    ) -> EntrySummary:
        entry_summary = self.get_with_details(entry_summary_id)
        current = entry_summary.filing_status
        requested = status.upper()

        if requested != current:
            if requested not in FILING_STATUS_TRANSITIONS.get(current, frozenset()):
                raise invalid_filing_status_change(current, requested)
            now = self._now()
            entry_summary.filing_status = requested
            if requested == "FILED":
                entry_summary.filed_at = now
            elif requested == "ACCEPTED":
                entry_summary.accepted_at = now

        if response_message:
            entry_summary.ace_response_message = response_message
        entry_summary.mark_changed(user_email)

        linked = (
            self.db.query(Preshipment)
            .filter(Preshipment.entry_summary_id == entry_summary.id)
            .all()
        )
        for preshipment in linked:
            preshipment.entry_summary_status = requested
            preshipment.mark_changed(user_email)

        if requested != current:
            group = self._owning_group(entry_summary)
            if group is not None:
                group.status = GROUP_STATUS_FOR_FILING[requested]
                group.mark_changed(user_email)

        self.db.flush()
        flow_info(
            logger,
            "Filing status updated entry_number=%s from=%s to=%s preshipments=%s user=%s",
            entry_summary.entry_number,
            current,
            requested,
            len(linked),
            user_email,
            category="entry_summary",
        )
        return entry_summary

    def update_line_item(
        self,
        entry_summary_id: int,
        line_number: int,
        changes: dict,
        *,
        user_email: str,
    ) -> EntrySummary:
        """Edit one line and recompute the totals in the same unit of work."""
        entry_summary = self.get_with_details(entry_summary_id)
        if entry_summary.filing_status not in EDITABLE_FILING_STATUSES:
            raise StateError(
                code="EntryNotEditable",
                message=(
                    f"Entry summary {entry_summary.entry_number} is "
                    f"'{entry_summary.filing_status}' and cannot be edited"
                ),
                status_code=409,
                details={"filing_status": entry_summary.filing_status},
            )

        line = next((li for li in entry_summary.line_items if li.line_number == line_number), None)
        if line is None:
            raise not_found("Entry summary line item", f"{entry_summary.entry_number}/{line_number}")

        for key, value in changes.items():
            if value is not None:
                setattr(line, key, value)

        if "quantity" in changes or "unit_value" in changes:
            line.total_value = money(Decimal(line.unit_value or 0) * Decimal(line.quantity or 0))
            if line.ftz_status is not None:
                line.ftz_status.ftz_line_item_quantity = line.quantity

        entry_summary.mark_changed(user_email)
        totals = self.totals.recalculate(entry_summary)

        group = self._owning_group(entry_summary)
        if group is not None:
            group.estimated_total_value = totals.total_entered_value
            group.estimated_total_duties = totals.grand_total_duty_amount
            group.mark_changed(user_email)
            self.db.flush()
        return entry_summary
