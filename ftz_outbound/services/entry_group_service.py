from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ftz_outbound.core.config import settings
from ftz_outbound.core.exceptions import (
    OutboundWorkflowError,
    PartialFailure,
    StateError,
    ValidationError,
    empty_group,
    group_entry_exists,
    group_members_already_linked,
    invalid_group_status,
    not_found,
    preshipment_already_linked,
)
from ftz_outbound.core.flow_logging import flow_info
from ftz_outbound.models.entry_group import EntryGroupPreshipment, EntrySummaryGroup
from ftz_outbound.models.entry_summary import EntrySummary, EntrySummaryLineItem, FtzStatusRecord
from ftz_outbound.models.preshipment import Preshipment
from ftz_outbound.schemas.entry_group import EntryGroupCreate
from ftz_outbound.services.entry_summary_builder import (
    EntryBuildResult,
    EntrySummaryBuilder,
    format_hts_number,
    money,
    validate_preshipment_for_entry_creation,
)
from ftz_outbound.services.grand_totals import GrandTotalsCalculator
from ftz_outbound.services.line_item_consolidator import (
    ConsolidatedLineItem,
    consolidate_line_items,
    item_total_value,
)
from ftz_outbound.services.number_range_get import NumberRangeService

logger = logging.getLogger(__name__)

BUILDABLE_GROUP_STATUSES = ("ready_for_review", "approved")
LOCKED_GROUP_STATUSES = frozenset({"filed", "accepted"})
GROUP_STATUS_TRANSITIONS = {
    "draft": frozenset({"ready_for_review"}),
    "ready_for_review": frozenset({"approved", "draft", "rejected"}),
    "approved": frozenset({"rejected"}),
    "rejected": frozenset({"draft"}),
    "filed": frozenset(),
    "accepted": frozenset(),
}


class EntrySummaryGroupService:
    """Group header maintenance and preshipment assignment."""

    def __init__(self, db: Session):
        self.db = db

    def create_group(self, payload: EntryGroupCreate, user_email: str) -> EntrySummaryGroup:
        data = payload.model_dump()
        if not data.get("foreign_trade_zone_identifier"):
            data["foreign_trade_zone_identifier"] = settings.DEFAULT_FTZ_IDENTIFIER
        group = EntrySummaryGroup(
            **data,
            status="draft",
            created_by=user_email,
            last_changed_by=user_email,
        )
        self.db.add(group)
        self.db.flush()
        flow_info(
            logger,
            "Entry group created group_id=%s name=%s user=%s",
            group.id,
            group.group_name,
            user_email,
            category="entry_group",
        )
        return group

    def get_group(self, group_id: int, *, for_update: bool = False) -> EntrySummaryGroup:
        query = (
            self.db.query(EntrySummaryGroup)
            .options(selectinload(EntrySummaryGroup.members))
            .filter(EntrySummaryGroup.id == group_id)
        )
        if for_update:
            query = query.with_for_update()
        group = query.first()
        if group is None:
            raise not_found("Entry summary group", group_id)
        return group

    def list_groups(self, status: str | None = None) -> list[EntrySummaryGroup]:
        query = self.db.query(EntrySummaryGroup)
        if status:
            query = query.filter(EntrySummaryGroup.status == status)
        return query.order_by(EntrySummaryGroup.id.desc()).all()

    def _ensure_mutable(self, group: EntrySummaryGroup) -> None:
        if group.status in LOCKED_GROUP_STATUSES:
            expected = [s for s in GROUP_STATUS_TRANSITIONS if s not in LOCKED_GROUP_STATUSES]
            raise invalid_group_status(group.id, group.status, expected)
        if group.entry_number:
            raise group_entry_exists(group.id, group.entry_number)

    def add_preshipment(
        self,
        group_id: int,
        preshipment_id: int,
        *,
        user_email: str,
        assignment_notes: str | None = None,
    ) -> EntryGroupPreshipment:
        group = self.get_group(group_id, for_update=True)
        self._ensure_mutable(group)

        preshipment = (
            self.db.query(Preshipment)
            .options(selectinload(Preshipment.items))
            .filter(Preshipment.id == preshipment_id)
            .first()
        )
        if preshipment is None:
            raise not_found("Preshipment", preshipment_id)

        if any(member.preshipment_id == preshipment_id for member in group.members):
            raise ValidationError(
                code="DuplicateGroupMember",
                message=f"Preshipment {preshipment.shipment_id} is already in group {group_id}",
                status_code=409,
                details={"group_id": group_id, "preshipment_id": preshipment_id},
            )
        if preshipment.entry_summary_id is not None:
            raise preshipment_already_linked(preshipment.id, preshipment.shipment_id, preshipment.entry_number)

        warnings = validate_preshipment_for_entry_creation(preshipment)
        member = EntryGroupPreshipment(
            preshipment_id=preshipment.id,
            assignment_notes=assignment_notes,
            preshipment_status=preshipment.stage,
            preshipment_value=money(sum((item_total_value(item) for item in preshipment.items), Decimal("0"))),
            preshipment_parts_count=len(preshipment.items),
            validated=not warnings,
            validation_warnings=warnings or None,
            added_at=datetime.utcnow(),
            added_by=user_email,
        )
        group.members.append(member)
        group.mark_changed(user_email)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise ValidationError(
                code="DuplicateGroupMember",
                message=f"Preshipment {preshipment.shipment_id} is already in group {group_id}",
                status_code=409,
                details={"group_id": group_id, "preshipment_id": preshipment_id},
            ) from exc

        flow_info(
            logger,
            "Preshipment assigned group_id=%s shipment_id=%s warnings=%s user=%s",
            group_id,
            preshipment.shipment_id,
            len(warnings),
            user_email,
            category="entry_group",
        )
        return member

    def remove_preshipment(self, group_id: int, preshipment_id: int, *, user_email: str) -> EntrySummaryGroup:
        group = self.get_group(group_id, for_update=True)
        self._ensure_mutable(group)

        member = next((m for m in group.members if m.preshipment_id == preshipment_id), None)
        if member is None:
            raise not_found("Entry group member", f"{group_id}/{preshipment_id}")

        group.members.remove(member)
        group.mark_changed(user_email)
        self.db.flush()
        return group

    def update_status(self, group_id: int, status: str, *, user_email: str) -> EntrySummaryGroup:
        """
        Manual workflow moves. 'filed' is only set by building the entry summary;
        after that the group status follows the entry's filing status.
        """
        group = self.get_group(group_id, for_update=True)
        requested = status.strip().lower()
        if requested == group.status:
            return group

        allowed = GROUP_STATUS_TRANSITIONS.get(group.status, frozenset())
        if requested not in allowed:
            raise StateError(
                code="InvalidGroupStatusChange",
                message=f"Cannot move entry summary group {group.id} from '{group.status}' to '{requested}'",
                status_code=409,
                details={"group_id": group.id, "from_status": group.status, "to_status": requested},
            )
        if group.entry_number:
            raise group_entry_exists(group.id, group.entry_number)

        previous = group.status
        group.status = requested
        group.mark_changed(user_email)
        self.db.flush()
        flow_info(
            logger,
            "Entry group status group_id=%s from=%s to=%s user=%s",
            group_id,
            previous,
            requested,
            user_email,
            category="entry_group",
        )
        return group


class EntrySummaryGroupOrchestrator:
    """
    Consolidated filing for a whole group: one entry summary, merged line
    items, every member preshipment pointed at the result.
    """

    def __init__(self, db: Session):
        self.db = db
        self.groups = EntrySummaryGroupService(db)
        self.builder = EntrySummaryBuilder(db)
        self.totals = GrandTotalsCalculator(db)

    def _member_preshipments(self, group: EntrySummaryGroup) -> list[Preshipment]:
        ids = [member.preshipment_id for member in group.members]
        if not ids:
            return []
        rows = (
            self.db.query(Preshipment)
            .options(selectinload(Preshipment.items), selectinload(Preshipment.customer))
            .filter(Preshipment.id.in_(ids))
            .all()
        )
        by_id = {row.id: row for row in rows}
        return [by_id[pid] for pid in ids if pid in by_id]

    def _create_consolidated_line(self, entry_summary: EntrySummary, line: ConsolidatedLineItem) -> None:
        status_code, filing_date = self.builder.ftz_status_for_lot(line.lot_id)
        record = EntrySummaryLineItem(
            line_number=line.line_number,
            hts_code=format_hts_number(line.hts_code),
            country_of_origin=line.country_of_origin,
            commodity_description=line.description,
            quantity=line.quantity,
            unit_of_measure=line.unit_of_measure or settings.DEFAULT_UNIT_OF_MEASURE,
            unit_value=line.unit_value,
            total_value=money(line.total_value),
            duty_rate=line.duty_rate,
            duty_amount=money(line.duty_amount),
            part_id=line.part_id,
            lot_id=line.lot_id,
            source_preshipments=list(line.source_preshipments),
            source_customers=line.source_customers,
            consolidated_from_count=line.consolidated_from_count,
        )
        record.ftz_status = FtzStatusRecord(
            ftz_line_item_quantity=line.quantity,
            ftz_merchandise_status_code=status_code,
            privileged_ftz_merchandise_filing_date=filing_date,
        )
        entry_summary.line_items.append(record)
        self.db.flush()

    def build_from_group(self, group_id: int, *, user_email: str) -> EntryBuildResult:
        group = self.groups.get_group(group_id, for_update=True)
        if group.status not in BUILDABLE_GROUP_STATUSES:
            raise invalid_group_status(group.id, group.status, list(BUILDABLE_GROUP_STATUSES))

        preshipments = self._member_preshipments(group)
        if not preshipments:
            raise empty_group(group.id)

        linked = [
            {"preshipment_id": p.id, "shipment_id": p.shipment_id, "entry_number": p.entry_number}
            for p in preshipments
            if p.entry_summary_id is not None
        ]
        if linked:
            raise group_members_already_linked(group.id, linked)

        lines = consolidate_line_items(preshipments)
        if not lines:
            raise ValidationError(
                code="EmptyGroupItems",
                message=f"Preshipments in entry summary group {group.id} carry no items",
                status_code=422,
                details={"group_id": group.id},
            )

        representative = preshipments[0]
        importer = representative.importer_of_record_number
        if not importer and representative.customer is not None:
            importer = representative.customer.ein

        entry_number = NumberRangeService.next_entry_number(self.db)
        now = datetime.utcnow()

        savepoint = self.db.begin_nested()
        try:
            entry_summary = EntrySummary(
                entry_number=entry_number,
                entry_type_code=settings.DEFAULT_ENTRY_TYPE_CODE,
                summary_filing_action_request_code="A",
                record_district_port_of_entry=group.filing_district_port,
                entry_filer_code=group.entry_filer_code,
                consolidated_summary_indicator="Y",
                importer_of_record_number=importer,
                consignee_id=representative.customer_id,
                date_of_importation=group.target_entry_date,
                foreign_trade_zone_identifier=group.foreign_trade_zone_identifier or settings.DEFAULT_FTZ_IDENTIFIER,
                bill_of_lading_number=representative.bill_of_lading_number,
                voyage_flight_trip_number=representative.voyage_flight_trip_number,
                carrier_code=representative.carrier_code,
                importing_conveyance_name=representative.importing_conveyance_name,
                mode_of_transportation=representative.mode_of_transportation,
                port_of_unlading=representative.port_of_unlading,
                filing_status="DRAFT",
                group_id=group.id,
                created_by=user_email,
                last_changed_by=user_email,
            )
            self.db.add(entry_summary)
            self.db.flush()

            for line in lines:
                self._create_consolidated_line(entry_summary, line)

            totals = self.totals.recalculate(entry_summary)

            group.status = "filed"
            group.entry_number = entry_number
            group.filed_at = now
            group.filed_by = user_email
            group.estimated_total_value = totals.total_entered_value
            group.estimated_total_duties = totals.grand_total_duty_amount
            group.mark_changed(user_email)

            for preshipment in preshipments:
                preshipment.entry_summary_id = entry_summary.id
                preshipment.entry_number = entry_number
                preshipment.entry_summary_status = "FILED"
                preshipment.mark_changed(user_email)

            self.db.flush()
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            logger.warning(
                "Group entry summary build rolled back group_id=%s entry_number=%s error=%s",
                group_id,
                entry_number,
                exc,
            )
            if isinstance(exc, OutboundWorkflowError):
                raise
            raise PartialFailure(
                code="GroupEntrySummaryBuildFailed",
                message=f"Consolidated entry summary {entry_number} was rolled back: {exc}",
                status_code=500,
                details={"entry_number": entry_number, "group_id": group_id},
            ) from exc

        flow_info(
            logger,
            "Group entry summary built group_id=%s entry_number=%s preshipments=%s lines=%s user=%s",
            group_id,
            entry_number,
            len(preshipments),
            len(lines),
            user_email,
            category="entry_group",
        )
        return EntryBuildResult(
            entry_summary=entry_summary,
            line_items_created=len(lines),
            preshipments_included=len(preshipments),
        )
