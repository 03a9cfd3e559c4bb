from __future__ import annotations

import pytest

from ftz_outbound.core.exceptions import StateError, ValidationError
from ftz_outbound.models.preshipment import PreshipmentStageAudit
from ftz_outbound.services.preshipment_service import PreshipmentService
from ftz_outbound.services.stage_transition import (
    ALLOWED_TRANSITIONS,
    PreshipmentStage,
    next_stages,
    validate_transition,
)


@pytest.mark.parametrize(
    "current,target",
    [
        ("Planning", "Picking"),
        ("Picking", "Packing"),
        ("Picking", "Planning"),
        ("Packing", "Loading"),
        ("Packing", "Picking"),
        ("Loading", "Ready to Ship"),
        ("Loading", "Packing"),
        ("Ready to Ship", "Staged"),
        ("Ready to Ship", "Loading"),
        ("Staged", "Shipped"),
        ("Staged", "Ready to Ship"),
    ],
)
def test_allowed_transitions(current, target):
    assert validate_transition(current, target).value == target


@pytest.mark.parametrize(
    "current,target",
    [
        ("Planning", "Packing"),
        ("Planning", "Shipped"),
        ("Picking", "Staged"),
        ("Ready to Ship", "Shipped"),
        ("Shipped", "Picking"),
        ("Shipped", "Staged"),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(StateError) as exc_info:
        validate_transition(current, target)
    assert exc_info.value.code == "InvalidTransition"
    assert exc_info.value.details == {"from_stage": current, "to_stage": target}


def test_same_stage_is_noop():
    for stage in PreshipmentStage:
        assert validate_transition(stage.value, stage.value) == stage


def test_shipped_is_terminal():
    assert ALLOWED_TRANSITIONS[PreshipmentStage.SHIPPED] == frozenset()
    assert next_stages("Shipped") == []
    assert next_stages("Staged") == ["Ready to Ship", "Shipped"]


def test_unknown_stage_is_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        validate_transition("Planning", "Dispatched")
    assert exc_info.value.code == "UnknownStage"
    assert exc_info.value.status_code == 422


def test_transition_records_audit_and_timestamps(make_preshipment, db_session):
    make_preshipment("SHP-1", stage="Loading")
    service = PreshipmentService(db_session)

    ready = service.transition_stage("SHP-1", "Ready to Ship", user_email="stager@example.com")
    db_session.commit()
    assert ready.stage == "Ready to Ship"
    assert ready.ready_at is not None

    staged = service.transition_stage(
        "SHP-1",
        "Staged",
        user_email="stager@example.com",
        staging_location=" DOCK-4 <b>",
        staging_notes="Left bay",
    )
    db_session.commit()
    assert staged.stage == "Staged"
    assert staged.staged_at is not None
    assert staged.staging_location == "DOCK-4 b"
    assert staged.staged_by == "stager@example.com"

    history = service.stage_history("SHP-1")
    assert [(row.from_stage, row.to_stage) for row in history] == [
        ("Loading", "Ready to Ship"),
        ("Ready to Ship", "Staged"),
    ]


def test_same_stage_transition_writes_no_audit(make_preshipment, db_session):
    make_preshipment("SHP-2", stage="Picking")
    service = PreshipmentService(db_session)

    result = service.transition_stage("SHP-2", "Picking", user_email="stager@example.com")
    db_session.commit()

    assert result.stage == "Picking"
    assert db_session.query(PreshipmentStageAudit).count() == 0


def test_staged_to_shipped_through_staging_path(make_preshipment, db_session):
    make_preshipment("SHP-3", stage="Staged")
    service = PreshipmentService(db_session)

    result = service.transition_stage("SHP-3", "Shipped", user_email="stager@example.com")
    db_session.commit()

    assert result.stage == "Shipped"
    assert result.shipped_at is not None
    assert result.signed_off_by is None
    audit = db_session.query(PreshipmentStageAudit).one()
    assert (audit.from_stage, audit.to_stage) == ("Staged", "Shipped")
    assert next_stages(result.stage) == []


def test_shipped_preshipment_cannot_move_back(make_preshipment, db_session):
    make_preshipment("SHP-4", stage="Shipped")
    service = PreshipmentService(db_session)

    with pytest.raises(StateError):
        service.transition_stage("SHP-4", "Picking", user_email="stager@example.com")
