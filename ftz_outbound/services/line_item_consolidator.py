from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ftz_outbound.models.preshipment import Preshipment, PreshipmentItem

MISSING_KEY_PART = "N/A"
TWO_PLACES = Decimal("0.01")


@dataclass
class ConsolidatedLineItem:
    hts_code: str
    country_of_origin: str
    description: str
    quantity: Decimal
    total_value: Decimal
    duty_rate: Decimal
    duty_amount: Decimal
    unit_of_measure: str | None = None
    part_id: str | None = None
    lot_id: str | None = None
    line_number: int = 0
    source_preshipments: list[int] = field(default_factory=list)
    customer_names: set[str] = field(default_factory=set)

    @property
    def consolidated_from_count(self) -> int:
        return len(self.source_preshipments)

    @property
    def source_customers(self) -> str:
        return ", ".join(sorted(self.customer_names))

    @property
    def unit_value(self) -> Decimal:
        if not self.quantity:
            return Decimal("0.00")
        return (self.total_value / self.quantity).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _key_part(value: str | None) -> str:
    value = (value or "").strip()
    return value or MISSING_KEY_PART


def consolidation_key(item: PreshipmentItem) -> tuple[str, str, str]:
    return (
        _key_part(item.hts_code),
        _key_part(item.country_of_origin),
        _key_part(item.description),
    )


def item_total_value(item: PreshipmentItem) -> Decimal:
    if item.total_value is not None:
        return Decimal(item.total_value)
    if item.unit_value is not None:
        return Decimal(item.unit_value) * Decimal(item.quantity or 0)
    return Decimal("0")


def consolidate_line_items(preshipments: Iterable[Preshipment]) -> list[ConsolidatedLineItem]:
    """
    Merge items from several preshipments into filing lines keyed by
    (HTS code, country of origin, description). Quantity and total value are
    summed; duty figures stay as first seen. Lines are numbered 1..N in the
    order their key first appeared.
    """
    accumulator: dict[tuple[str, str, str], ConsolidatedLineItem] = {}

    for preshipment in preshipments:
        customer_name = preshipment.customer.name if preshipment.customer is not None else None
        for item in preshipment.items:
            key = consolidation_key(item)
            quantity = Decimal(item.quantity or 0)
            total_value = item_total_value(item)

            line = accumulator.get(key)
            if line is None:
                line = ConsolidatedLineItem(
                    hts_code=key[0],
                    country_of_origin=key[1],
                    description=key[2],
                    quantity=quantity,
                    total_value=total_value,
                    duty_rate=Decimal(item.duty_rate or 0),
                    duty_amount=Decimal(item.duty_amount or 0),
                    unit_of_measure=item.unit_of_measure,
                    part_id=item.part_id,
                    lot_id=item.lot_id,
                )
                accumulator[key] = line
            else:
                line.quantity += quantity
                line.total_value += total_value

            line.source_preshipments.append(preshipment.id)
            if customer_name:
                line.customer_names.add(customer_name)

    lines = list(accumulator.values())
    for line_number, line in enumerate(lines, start=1):
        line.line_number = line_number
    return lines
