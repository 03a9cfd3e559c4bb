from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class OutboundWorkflowError(Exception):
    code: str
    message: str
    status_code: int = 400
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        detail.update(self.details)
        return detail


# --- Validation -------------------------------------------------------------


class ValidationError(OutboundWorkflowError):
    pass


def missing_signoff_fields(fields: list[str]) -> ValidationError:
    return ValidationError(
        code="MissingSignoffFields",
        message=f"Driver signoff is missing required fields: {', '.join(fields)}",
        status_code=422,
        details={"missing_fields": list(fields)},
    )


def entry_requirements_missing(errors: list[str]) -> ValidationError:
    return ValidationError(
        code="EntryRequirementsMissing",
        message=", ".join(errors),
        status_code=422,
        details={"errors": list(errors)},
    )


def empty_group(group_id: int) -> ValidationError:
    return ValidationError(
        code="EmptyGroup",
        message=f"No preshipments found in entry summary group {group_id}.",
        status_code=422,
        details={"group_id": group_id},
    )


# --- State ------------------------------------------------------------------


class StateError(OutboundWorkflowError):
    pass


def invalid_transition(from_stage: str, to_stage: str) -> StateError:
    return StateError(
        code="InvalidTransition",
        message=f"Invalid stage transition from '{from_stage}' to '{to_stage}'",
        status_code=409,
        details={"from_stage": from_stage, "to_stage": to_stage},
    )


def invalid_stage_for_signoff(stage: str) -> StateError:
    return StateError(
        code="InvalidStageForSignoff",
        message=(
            f"Cannot process signoff for shipment in '{stage}' stage. "
            "Must be 'Staged' or 'Ready to Ship'"
        ),
        status_code=409,
        details={"stage": stage},
    )


def invalid_group_status(group_id: int, status: str, expected: list[str]) -> StateError:
    return StateError(
        code="InvalidGroupStatus",
        message=(
            f"Entry summary group {group_id} is '{status}'; "
            f"expected one of: {', '.join(expected)}"
        ),
        status_code=409,
        details={"group_id": group_id, "status": status, "expected": list(expected)},
    )


def invalid_filing_status_change(current: str, requested: str) -> StateError:
    return StateError(
        code="InvalidFilingStatusChange",
        message=f"Cannot change filing status from '{current}' to '{requested}'",
        status_code=409,
        details={"from_status": current, "to_status": requested},
    )


def preshipment_already_linked(preshipment_id: int, shipment_id: str, entry_number: str | None) -> StateError:
    return StateError(
        code="PreshipmentAlreadyLinked",
        message=f"Preshipment {shipment_id} is already linked to entry summary {entry_number}",
        status_code=409,
        details={"preshipment_id": preshipment_id, "entry_number": entry_number},
    )


def group_members_already_linked(group_id: int, linked: list[dict]) -> StateError:
    shipment_ids = ", ".join(row["shipment_id"] for row in linked)
    return StateError(
        code="PreshipmentAlreadyLinked",
        message=f"Entry summary group {group_id} has members already linked to an entry summary: {shipment_ids}",
        status_code=409,
        details={"group_id": group_id, "preshipments": list(linked)},
    )


def preshipment_in_open_group(preshipment_id: int, shipment_id: str, group_id: int, group_status: str) -> StateError:
    return StateError(
        code="PreshipmentInGroup",
        message=(
            f"Preshipment {shipment_id} belongs to entry summary group {group_id} ('{group_status}'); "
            "file it through the group or remove it first"
        ),
        status_code=409,
        details={"preshipment_id": preshipment_id, "group_id": group_id, "group_status": group_status},
    )


def group_entry_exists(group_id: int, entry_number: str) -> StateError:
    return StateError(
        code="GroupEntryExists",
        message=(
            f"Entry summary group {group_id} already produced entry {entry_number}; "
            "correct and refile that entry instead"
        ),
        status_code=409,
        details={"group_id": group_id, "entry_number": entry_number},
    )


def entry_number_range_inactive(category: str, type_id: int) -> StateError:
    return StateError(
        code="EntryNumberRangeInactive",
        message=f"No active number range found for {category} with type {type_id}",
        status_code=409,
        details={"doc_category": category, "doc_type_id": type_id},
    )


# --- Not found / persistence -----------------------------------------------


class NotFoundError(OutboundWorkflowError):
    pass


def not_found(entity: str, reference) -> NotFoundError:
    return NotFoundError(
        code="NotFound",
        message=f"{entity} '{reference}' not found",
        status_code=404,
        details={"entity": entity, "reference": str(reference)},
    )


class PersistenceError(OutboundWorkflowError):
    pass


class PartialFailure(OutboundWorkflowError):
    pass
