from __future__ import annotations

from enum import Enum

from ftz_outbound.core.exceptions import ValidationError, invalid_transition


class PreshipmentStage(str, Enum):
    PLANNING = "Planning"
    PICKING = "Picking"
    PACKING = "Packing"
    LOADING = "Loading"
    READY_TO_SHIP = "Ready to Ship"
    STAGED = "Staged"
    SHIPPED = "Shipped"


# Every stage has an entry, so lookups never miss.
ALLOWED_TRANSITIONS: dict[PreshipmentStage, frozenset[PreshipmentStage]] = {
    PreshipmentStage.PLANNING: frozenset({PreshipmentStage.PICKING}),
    PreshipmentStage.PICKING: frozenset({PreshipmentStage.PACKING, PreshipmentStage.PLANNING}),
    PreshipmentStage.PACKING: frozenset({PreshipmentStage.LOADING, PreshipmentStage.PICKING}),
    PreshipmentStage.LOADING: frozenset({PreshipmentStage.READY_TO_SHIP, PreshipmentStage.PACKING}),
    PreshipmentStage.READY_TO_SHIP: frozenset({PreshipmentStage.STAGED, PreshipmentStage.LOADING}),
    PreshipmentStage.STAGED: frozenset({PreshipmentStage.SHIPPED, PreshipmentStage.READY_TO_SHIP}),
    PreshipmentStage.SHIPPED: frozenset(),
}

SIGNOFF_STAGES = frozenset({PreshipmentStage.STAGED, PreshipmentStage.READY_TO_SHIP})


def parse_stage(value: str | PreshipmentStage) -> PreshipmentStage:
    if isinstance(value, PreshipmentStage):
        return value
    try:
        return PreshipmentStage((value or "").strip())
    except ValueError:
        raise ValidationError(
            code="UnknownStage",
            message=f"Unknown preshipment stage '{value}'",
            status_code=422,
            details={
                "stage": value,
                "valid_stages": [stage.value for stage in PreshipmentStage],
            },
        ) from None


def validate_transition(
    current: str | PreshipmentStage,
    target: str | PreshipmentStage,
) -> PreshipmentStage:
    """
    Check a stage change against the workflow graph and return the target.
    Staying on the same stage is a no-op and always allowed.
    """
    current_stage = parse_stage(current)
    target_stage = parse_stage(target)
    if current_stage == target_stage:
        return target_stage
    if target_stage not in ALLOWED_TRANSITIONS[current_stage]:
        raise invalid_transition(current_stage.value, target_stage.value)
    return target_stage


def next_stages(current: str | PreshipmentStage) -> list[str]:
    allowed = ALLOWED_TRANSITIONS[parse_stage(current)]
    return [stage.value for stage in PreshipmentStage if stage in allowed]
