from __future__ import annotations

from decimal import Decimal

import pytest

from ftz_outbound.models.entry_summary import EntrySummary
from ftz_outbound.models.number_range import SysNumberRange
from ftz_outbound.models.preshipment import Preshipment
from ftz_outbound.schemas.preshipment import DriverSignoffRequest
from ftz_outbound.services.entry_summary_builder import EntrySummaryBuilder
from ftz_outbound.services.number_range_get import NumberRangeService
from ftz_outbound.services.outbound_engine import OutboundComplianceEngine
from ftz_outbound.services.preshipment_service import PreshipmentService


def test_transition_success_is_committed(make_preshipment, db_session):
    make_preshipment("SHP-1", stage="Planning")

    result = OutboundComplianceEngine(db_session).transition_stage(
        "SHP-1", "Picking", user_email="stager@example.com"
    )

    assert result.success is True
    assert result.error is None
    assert result.data.stage == "Picking"
    db_session.expire_all()
    assert db_session.query(Preshipment).filter_by(shipment_id="SHP-1").one().stage == "Picking"


def test_rejected_operation_returns_error_envelope(make_preshipment, db_session):
    make_preshipment("SHP-2", stage="Planning")

    result = OutboundComplianceEngine(db_session).transition_stage("SHP-2", "Staged")

    assert result.success is False
    assert result.data is None
    assert result.error_code == "InvalidTransition"
    assert result.status_code == 409
    assert result.to_detail() == {
        "code": "InvalidTransition",
        "message": "Invalid stage transition from 'Planning' to 'Staged'",
        "from_stage": "Planning",
        "to_stage": "Staged",
    }


def test_missing_shipment_is_not_found(master_data):
    result = OutboundComplianceEngine(master_data).finalize_shipment(
        "SHP-NOPE",
        DriverSignoffRequest(
            driver_name="Dana Driver",
            driver_license_number="D1234567",
            license_plate_number="TX-99X",
        ),
    )

    assert result.success is False
    assert result.error_code == "NotFound"
    assert result.status_code == 404


def test_finalize_defaults_system_user(make_preshipment, db_session):
    make_preshipment("SHP-3", stage="Staged")

    result = OutboundComplianceEngine(db_session).finalize_shipment(
        "SHP-3",
        DriverSignoffRequest(
            driver_name="Dana Driver",
            driver_license_number="D1234567",
            license_plate_number="TX-99X",
        ),
    )

    assert result.success is True
    assert result.data.preshipment.signed_off_by == "system@local"
    assert result.data.lot_decrements[0].new_quantity == Decimal("90")


def test_failed_build_rolls_back_entry_number(make_preshipment, db_session, monkeypatch):
    preshipment = make_preshipment("SHP-4")
    preshipment_id = preshipment.id

    def _fail(self, entry_summary, line_number, item, part):
        raise RuntimeError("line insert failed")

    monkeypatch.setattr(EntrySummaryBuilder, "create_line_item", _fail)

    result = OutboundComplianceEngine(db_session).build_entry_summary_from_preshipment(preshipment_id)

    assert result.success is False
    assert result.error_code == "EntrySummaryBuildFailed"
    assert result.status_code == 500
    assert result.details["preshipment_id"] == preshipment_id
    assert db_session.query(EntrySummary).count() == 0
    assert db_session.query(SysNumberRange).count() == 0


def test_group_build_for_unknown_group(master_data):
    result = OutboundComplianceEngine(master_data).build_entry_summary_from_group(404)

    assert result.success is False
    assert result.error_code == "NotFound"


def test_staged_preshipment_ships_through_transition(make_preshipment, db_session):
    make_preshipment("SHP-5", stage="Staged")

    result = OutboundComplianceEngine(db_session).transition_stage(
        "SHP-5", "Shipped", user_email="stager@example.com"
    )

    assert result.success is True
    assert result.data.stage == "Shipped"
    db_session.expire_all()
    assert db_session.query(Preshipment).filter_by(shipment_id="SHP-5").one().stage == "Shipped"


def test_inactive_entry_range_returns_error_envelope(make_preshipment, db_session):
    preshipment_id = make_preshipment("SHP-6").id
    range_config = NumberRangeService.ensure_entry_range(db_session)
    range_config.is_active = False
    db_session.commit()

    result = OutboundComplianceEngine(db_session).build_entry_summary_from_preshipment(preshipment_id)

    assert result.success is False
    assert result.error_code == "EntryNumberRangeInactive"
    assert result.status_code == 409
    assert db_session.query(EntrySummary).count() == 0
    assert db_session.get(Preshipment, preshipment_id).entry_summary_id is None


def test_unexpected_error_rolls_back_before_raising(make_preshipment, db_session, monkeypatch):
    make_preshipment("SHP-7", stage="Planning")

    def _explode(self, shipment_id, target_stage, **kwargs):
        preshipment = self.get_by_shipment_id(shipment_id)
        preshipment.notes = "half-written"
        self.db.flush()
        raise RuntimeError("boom")

    monkeypatch.setattr(PreshipmentService, "transition_stage", _explode)

    with pytest.raises(RuntimeError):
        OutboundComplianceEngine(db_session).transition_stage("SHP-7", "Picking")

    assert db_session.query(Preshipment).filter_by(shipment_id="SHP-7").one().notes is None
