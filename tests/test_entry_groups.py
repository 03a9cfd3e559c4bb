from __future__ import annotations

from decimal import Decimal

import pytest

from ftz_outbound.core.exceptions import NotFoundError, PartialFailure, StateError, ValidationError
from ftz_outbound.models.entry_summary import EntryGrandTotals, EntrySummary
from ftz_outbound.models.preshipment import Preshipment
from ftz_outbound.schemas.entry_group import EntryGroupCreate
from ftz_outbound.services.entry_group_service import (
    EntrySummaryGroupOrchestrator,
    EntrySummaryGroupService,
)
from ftz_outbound.services.entry_summary_builder import EntrySummaryBuilder

BRACKET = {
    "part_id": "P-100",
    "lot_id": "LOT-1",
    "hts_code": "8708.80.6590",
    "country_of_origin": "MX",
    "description": "bracket",
    "unit_value": Decimal("10.00"),
}


def _group(db_session, name: str = "Week 42") -> int:
    service = EntrySummaryGroupService(db_session)
    group = service.create_group(
        EntryGroupCreate(
            group_name=name,
            filing_district_port="2304",
            entry_filer_code="ABC",
        ),
        "broker@example.com",
    )
    db_session.commit()
    return group.id


def _ready_group_with_members(db_session, make_preshipment) -> tuple[int, list[Preshipment]]:
    first = make_preshipment(
        "SHP-1",
        stage="Shipped",
        items=[
            dict(BRACKET, quantity=Decimal("10"), duty_rate=Decimal("0.025"), duty_amount=Decimal("2.50")),
            {
                "part_id": "P-200",
                "lot_id": "LOT-2",
                "hts_code": "8708.30.5090",
                "country_of_origin": "CN",
                "description": "rotor",
                "quantity": Decimal("2"),
                "unit_value": Decimal("40.00"),
            },
        ],
    )
    second = make_preshipment(
        "SHP-2",
        stage="Shipped",
        customer_id=2,
        items=[dict(BRACKET, quantity=Decimal("15"))],
    )
    group_id = _group(db_session)
    service = EntrySummaryGroupService(db_session)
    service.add_preshipment(group_id, first.id, user_email="broker@example.com")
    service.add_preshipment(group_id, second.id, user_email="broker@example.com")
    service.update_status(group_id, "ready_for_review", user_email="broker@example.com")
    db_session.commit()
    return group_id, [first, second]


def test_create_group_defaults(master_data):
    group_id = _group(master_data)
    group = EntrySummaryGroupService(master_data).get_group(group_id)

    assert group.status == "draft"
    assert group.foreign_trade_zone_identifier == "FTZ-037"
    assert group.members == []


def test_add_preshipment_snapshots_member(make_preshipment, db_session):
    preshipment = make_preshipment(
        "SHP-1",
        items=[dict(BRACKET, quantity=Decimal("3"))],
        importer_of_record_number=None,
    )
    group_id = _group(db_session)

    member = EntrySummaryGroupService(db_session).add_preshipment(
        group_id, preshipment.id, user_email="broker@example.com", assignment_notes="late pick"
    )
    db_session.commit()

    assert member.preshipment_status == "Planning"
    assert member.preshipment_value == Decimal("30.00")
    assert member.preshipment_parts_count == 1
    assert member.validated is False
    assert member.validation_warnings == ["Importer of Record Number is required"]
    assert member.assignment_notes == "late pick"
    assert member.added_by == "broker@example.com"


def test_add_preshipment_twice_is_rejected(make_preshipment, db_session):
    preshipment = make_preshipment("SHP-1")
    group_id = _group(db_session)
    service = EntrySummaryGroupService(db_session)
    service.add_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()

    with pytest.raises(ValidationError) as exc_info:
        service.add_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    assert exc_info.value.code == "DuplicateGroupMember"
    assert exc_info.value.status_code == 409


def test_add_linked_preshipment_is_rejected(make_preshipment, db_session):
    preshipment = make_preshipment("SHP-1")
    EntrySummaryBuilder(db_session).build_from_preshipment(preshipment.id, user_email="broker@example.com")
    db_session.commit()
    group_id = _group(db_session)

    with pytest.raises(StateError) as exc_info:
        EntrySummaryGroupService(db_session).add_preshipment(
            group_id, preshipment.id, user_email="broker@example.com"
        )
    assert exc_info.value.code == "PreshipmentAlreadyLinked"


def test_remove_preshipment(make_preshipment, db_session):
    preshipment = make_preshipment("SHP-1")
    group_id = _group(db_session)
    service = EntrySummaryGroupService(db_session)
    service.add_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()

    group = service.remove_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()

    assert group.members == []


def test_status_moves_follow_workflow(master_data):
    group_id = _group(master_data)
    service = EntrySummaryGroupService(master_data)

    with pytest.raises(StateError) as exc_info:
        service.update_status(group_id, "approved", user_email="broker@example.com")
    assert exc_info.value.code == "InvalidGroupStatusChange"

    service.update_status(group_id, "ready_for_review", user_email="broker@example.com")
    service.update_status(group_id, "approved", user_email="broker@example.com")
    master_data.commit()
    assert service.get_group(group_id).status == "approved"

    with pytest.raises(StateError):
        service.update_status(group_id, "filed", user_email="broker@example.com")


def test_build_from_draft_group_is_rejected(make_preshipment, db_session):
    preshipment = make_preshipment("SHP-1")
    group_id = _group(db_session)
    EntrySummaryGroupService(db_session).add_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()

    with pytest.raises(StateError) as exc_info:
        EntrySummaryGroupOrchestrator(db_session).build_from_group(group_id, user_email="broker@example.com")
    assert exc_info.value.code == "InvalidGroupStatus"
    assert exc_info.value.details["expected"] == ["ready_for_review", "approved"]


def test_build_from_empty_group_creates_nothing(master_data):
    group_id = _group(master_data)
    EntrySummaryGroupService(master_data).update_status(group_id, "ready_for_review", user_email="broker@example.com")
    master_data.commit()

    with pytest.raises(ValidationError) as exc_info:
        EntrySummaryGroupOrchestrator(master_data).build_from_group(group_id, user_email="broker@example.com")

    assert exc_info.value.code == "EmptyGroup"
    assert master_data.query(EntrySummary).count() == 0


def test_build_from_group_consolidates(make_preshipment, db_session):
    group_id, members = _ready_group_with_members(db_session, make_preshipment)

    result = EntrySummaryGroupOrchestrator(db_session).build_from_group(group_id, user_email="broker@example.com")
    db_session.commit()

    entry = result.entry_summary
    assert result.preshipments_included == 2
    assert result.line_items_created == 2
    assert entry.consolidated_summary_indicator == "Y"
    assert entry.group_id == group_id
    assert entry.record_district_port_of_entry == "2304"
    assert entry.importer_of_record_number == "12-3456789"

    bracket, rotor = entry.line_items
    assert bracket.hts_code == "8708.80.6590"
    assert bracket.quantity == Decimal("25")
    assert bracket.total_value == Decimal("250.00")
    assert bracket.consolidated_from_count == 2
    assert bracket.source_customers == "Acme Motors, Baja Parts"
    assert bracket.source_preshipments == [members[0].id, members[1].id]
    assert bracket.ftz_status.ftz_merchandise_status_code == "P"
    assert rotor.line_number == 2
    assert rotor.consolidated_from_count == 1
    assert rotor.ftz_status.ftz_merchandise_status_code == "N"

    assert entry.grand_totals.total_entered_value == Decimal("330.00")
    assert entry.grand_totals.grand_total_duty_amount == Decimal("2.50")

    group = EntrySummaryGroupService(db_session).get_group(group_id)
    assert group.status == "filed"
    assert group.entry_number == entry.entry_number
    assert group.filed_by == "broker@example.com"
    assert group.estimated_total_value == Decimal("330.00")

    for preshipment in members:
        db_session.refresh(preshipment)
        assert preshipment.entry_summary_id == entry.id
        assert preshipment.entry_number == entry.entry_number
        assert preshipment.entry_summary_status == "FILED"


def test_filed_group_is_locked(make_preshipment, db_session):
    group_id, _ = _ready_group_with_members(db_session, make_preshipment)
    EntrySummaryGroupOrchestrator(db_session).build_from_group(group_id, user_email="broker@example.com")
    db_session.commit()
    extra = make_preshipment("SHP-3")

    with pytest.raises(StateError) as exc_info:
        EntrySummaryGroupService(db_session).add_preshipment(group_id, extra.id, user_email="broker@example.com")
    assert exc_info.value.code == "InvalidGroupStatus"


def test_accepted_filing_marks_group(make_preshipment, db_session):
    group_id, _ = _ready_group_with_members(db_session, make_preshipment)
    entry = EntrySummaryGroupOrchestrator(db_session).build_from_group(
        group_id, user_email="broker@example.com"
    ).entry_summary
    db_session.commit()

    builder = EntrySummaryBuilder(db_session)
    builder.update_filing_status(entry.id, "FILED", user_email="broker@example.com")
    builder.update_filing_status(entry.id, "ACCEPTED", user_email="broker@example.com")
    db_session.commit()

    assert EntrySummaryGroupService(db_session).get_group(group_id).status == "accepted"


def test_single_build_refuses_open_group_member(make_preshipment, db_session):
    preshipment = make_preshipment("SHP-1")
    group_id = _group(db_session)
    service = EntrySummaryGroupService(db_session)
    service.add_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()
    builder = EntrySummaryBuilder(db_session)

    with pytest.raises(StateError) as exc_info:
        builder.build_from_preshipment(preshipment.id, user_email="broker@example.com")
    assert exc_info.value.code == "PreshipmentInGroup"
    assert exc_info.value.details["group_id"] == group_id
    assert db_session.query(EntrySummary).count() == 0

    service.remove_preshipment(group_id, preshipment.id, user_email="broker@example.com")
    db_session.commit()
    result = builder.build_from_preshipment(preshipment.id, user_email="broker@example.com")
    assert result.entry_summary.entry_number == "FTZ00000001"


def test_group_build_refuses_members_linked_elsewhere(make_preshipment, db_session):
    shared = make_preshipment("SHP-1", items=[dict(BRACKET, quantity=Decimal("4"))])
    first_group = _group(db_session, "Week 42")
    second_group = _group(db_session, "Week 43")
    service = EntrySummaryGroupService(db_session)
    for group_id in (first_group, second_group):
        service.add_preshipment(group_id, shared.id, user_email="broker@example.com")
        service.update_status(group_id, "ready_for_review", user_email="broker@example.com")
    db_session.commit()

    orchestrator = EntrySummaryGroupOrchestrator(db_session)
    first_entry = orchestrator.build_from_group(first_group, user_email="broker@example.com").entry_summary
    db_session.commit()

    with pytest.raises(StateError) as exc_info:
        orchestrator.build_from_group(second_group, user_email="broker@example.com")

    assert exc_info.value.code == "PreshipmentAlreadyLinked"
    assert exc_info.value.details["preshipments"] == [
        {"preshipment_id": shared.id, "shipment_id": "SHP-1", "entry_number": first_entry.entry_number}
    ]
    db_session.rollback()
    assert db_session.query(EntrySummary).count() == 1
    db_session.refresh(shared)
    assert shared.entry_summary_id == first_entry.id
    assert service.get_group(second_group).status == "ready_for_review"


def test_group_build_failure_leaves_no_partial_entry(make_preshipment, db_session, monkeypatch):
    group_id, members = _ready_group_with_members(db_session, make_preshipment)

    def _fail(self, entry_summary, line):
        raise RuntimeError("line insert failed")

    monkeypatch.setattr(EntrySummaryGroupOrchestrator, "_create_consolidated_line", _fail)

    with pytest.raises(PartialFailure) as exc_info:
        EntrySummaryGroupOrchestrator(db_session).build_from_group(group_id, user_email="broker@example.com")

    assert exc_info.value.code == "GroupEntrySummaryBuildFailed"
    assert exc_info.value.status_code == 500
    entry_number = exc_info.value.details["entry_number"]
    with pytest.raises(NotFoundError):
        EntrySummaryBuilder(db_session).get_with_details(entry_number=entry_number)
    assert db_session.query(EntrySummary).count() == 0
    assert db_session.query(EntryGrandTotals).count() == 0

    group = EntrySummaryGroupService(db_session).get_group(group_id)
    assert group.status == "ready_for_review"
    assert group.entry_number is None
    for preshipment in members:
        db_session.refresh(preshipment)
        assert preshipment.entry_summary_id is None
        assert preshipment.entry_number is None


def test_rejected_group_entry_is_corrected_in_place(make_preshipment, db_session):
    group_id, _ = _ready_group_with_members(db_session, make_preshipment)
    entry = EntrySummaryGroupOrchestrator(db_session).build_from_group(
        group_id, user_email="broker@example.com"
    ).entry_summary
    builder = EntrySummaryBuilder(db_session)
    builder.update_filing_status(entry.id, "FILED", user_email="broker@example.com")
    builder.update_filing_status(entry.id, "REJECTED", user_email="broker@example.com")
    db_session.commit()

    service = EntrySummaryGroupService(db_session)
    assert service.get_group(group_id).status == "rejected"

    with pytest.raises(StateError) as exc_info:
        service.update_status(group_id, "draft", user_email="broker@example.com")
    assert exc_info.value.code == "GroupEntryExists"

    extra = make_preshipment("SHP-3")
    with pytest.raises(StateError) as exc_info:
        service.add_preshipment(group_id, extra.id, user_email="broker@example.com")
    assert exc_info.value.code == "GroupEntryExists"

    with pytest.raises(StateError):
        EntrySummaryGroupOrchestrator(db_session).build_from_group(group_id, user_email="broker@example.com")

    builder.update_filing_status(entry.id, "DRAFT", user_email="broker@example.com")
    db_session.commit()
    assert service.get_group(group_id).status == "filed"
    assert db_session.query(EntrySummary).count() == 1


def test_line_item_edit_updates_group_estimates(make_preshipment, db_session):
    group_id, _ = _ready_group_with_members(db_session, make_preshipment)
    entry = EntrySummaryGroupOrchestrator(db_session).build_from_group(
        group_id, user_email="broker@example.com"
    ).entry_summary
    db_session.commit()

    EntrySummaryBuilder(db_session).update_line_item(
        entry.id,
        1,
        {"quantity": Decimal("20")},
        user_email="broker@example.com",
    )
    db_session.commit()

    group = EntrySummaryGroupService(db_session).get_group(group_id)
    assert group.estimated_total_value == Decimal("280.00")
    assert group.estimated_total_duties == Decimal("2.50")
    assert group.last_changed_by == "broker@example.com"
