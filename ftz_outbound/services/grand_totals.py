from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from ftz_outbound.models.entry_summary import EntryGrandTotals, EntrySummary, EntrySummaryLineItem

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class GrandTotals:
    total_entered_value: Decimal = ZERO
    grand_total_duty_amount: Decimal = ZERO
    grand_total_user_fee_amount: Decimal = ZERO
    grand_total_tax_amount: Decimal = ZERO
    grand_total_antidumping_duty_amount: Decimal = ZERO
    grand_total_countervailing_duty_amount: Decimal = ZERO
    estimated_total_amount: Decimal = ZERO


def calculate_grand_totals(line_items: Iterable[EntrySummaryLineItem]) -> GrandTotals:
    """User fees and taxes are zero for FTZ filings."""
    entered = ZERO
    duty = ZERO
    antidumping = ZERO
    countervailing = ZERO
    for line in line_items:
        entered += Decimal(line.total_value or 0)
        duty += Decimal(line.duty_amount or 0)
        antidumping += Decimal(line.antidumping_duty_amount or 0)
        countervailing += Decimal(line.countervailing_duty_amount or 0)

    return GrandTotals(
        total_entered_value=entered,
        grand_total_duty_amount=duty,
        grand_total_antidumping_duty_amount=antidumping,
        grand_total_countervailing_duty_amount=countervailing,
        estimated_total_amount=entered + duty,
    )


class GrandTotalsCalculator:
    def __init__(self, db: Session):
        self.db = db

    def recalculate(self, entry_summary: EntrySummary) -> EntryGrandTotals:
        """Replace the 1:1 totals row from the entry's current line items."""
        self.db.flush()
        line_items = (
            self.db.query(EntrySummaryLineItem)
            .filter(EntrySummaryLineItem.entry_summary_id == entry_summary.id)
            .all()
        )
        totals = calculate_grand_totals(line_items)

        record = (
            self.db.query(EntryGrandTotals)
            .filter(EntryGrandTotals.entry_summary_id == entry_summary.id)
            .first()
        )
        if record is None:
            record = EntryGrandTotals(entry_summary_id=entry_summary.id)
            entry_summary.grand_totals = record

        record.total_entered_value = totals.total_entered_value
        record.grand_total_duty_amount = totals.grand_total_duty_amount
        record.grand_total_user_fee_amount = totals.grand_total_user_fee_amount
        record.grand_total_tax_amount = totals.grand_total_tax_amount
        record.grand_total_antidumping_duty_amount = totals.grand_total_antidumping_duty_amount
        record.grand_total_countervailing_duty_amount = totals.grand_total_countervailing_duty_amount
        record.estimated_total_amount = totals.estimated_total_amount
        record.calculated_at = datetime.utcnow()
        self.db.flush()
        return record
