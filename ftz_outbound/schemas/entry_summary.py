from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from .base import BaseSchema

FILING_STATUSES = ("DRAFT", "FILED", "ACCEPTED", "REJECTED")


class FtzStatusRecord(BaseSchema):
    id: int
    ftz_line_item_quantity: Decimal
    ftz_merchandise_status_code: str
    privileged_ftz_merchandise_filing_date: Optional[date] = None


class EntrySummaryLineItem(BaseSchema):
    id: int
    line_number: int
    hts_code: str
    country_of_origin: str
    commodity_description: str
    quantity: Decimal
    unit_of_measure: Optional[str] = None
    unit_value: Decimal
    total_value: Decimal
    duty_rate: Decimal
    duty_amount: Decimal
    antidumping_duty_amount: Decimal
    countervailing_duty_amount: Decimal
    part_id: Optional[str] = None
    lot_id: Optional[str] = None
    source_preshipments: Optional[List[int]] = None
    source_customers: Optional[str] = None
    consolidated_from_count: Optional[int] = None
    ftz_status: Optional[FtzStatusRecord] = None


class EntryGrandTotals(BaseSchema):
    total_entered_value: Decimal
    grand_total_duty_amount: Decimal
    grand_total_user_fee_amount: Decimal
    grand_total_tax_amount: Decimal
    grand_total_antidumping_duty_amount: Decimal
    grand_total_countervailing_duty_amount: Decimal
    estimated_total_amount: Decimal
    calculated_at: Optional[datetime] = None


class EntrySummaryHeader(BaseSchema):
    id: int
    entry_number: str
    entry_type_code: str
    summary_filing_action_request_code: str
    record_district_port_of_entry: str
    entry_filer_code: str
    consolidated_summary_indicator: str
    importer_of_record_number: Optional[str] = None
    consignee_id: Optional[int] = None
    date_of_importation: Optional[date] = None
    foreign_trade_zone_identifier: Optional[str] = None

    bill_of_lading_number: Optional[str] = None
    voyage_flight_trip_number: Optional[str] = None
    carrier_code: Optional[str] = None
    importing_conveyance_name: Optional[str] = None
    mode_of_transportation: Optional[str] = None
    port_of_unlading: Optional[str] = None

    filing_status: str
    filed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    ace_response_message: Optional[str] = None

    preshipment_id: Optional[int] = None
    group_id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class EntrySummaryDetail(EntrySummaryHeader):
    line_items: List[EntrySummaryLineItem] = []
    grand_totals: Optional[EntryGrandTotals] = None


class DroppedItem(BaseModel):
    item_number: int
    part_id: Optional[str] = None
    reason: str


class EntrySummaryBuildResponse(BaseModel):
    entry_summary_id: int
    entry_number: str
    line_items_created: int
    total_entered_value: Decimal
    total_duties: Decimal
    estimated_total_amount: Decimal
    dropped_items: List[DroppedItem] = []
    preshipments_included: Optional[int] = None


class FilingStatusUpdate(BaseModel):
    filing_status: str
    ace_response_message: Optional[str] = None

    @field_validator("filing_status")
    @classmethod
    def validate_filing_status(cls, value: str) -> str:
        value = (value or "").strip().upper()
        if value not in FILING_STATUSES:
            raise ValueError(f"filing_status must be one of: {', '.join(FILING_STATUSES)}")
        return value


class LineItemUpdate(BaseModel):
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    unit_value: Optional[Decimal] = Field(default=None, ge=0)
    duty_rate: Optional[Decimal] = Field(default=None, ge=0)
    duty_amount: Optional[Decimal] = Field(default=None, ge=0)
    antidumping_duty_amount: Optional[Decimal] = Field(default=None, ge=0)
    countervailing_duty_amount: Optional[Decimal] = Field(default=None, ge=0)
