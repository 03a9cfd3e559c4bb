from pydantic import BaseModel, field_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from .base import BaseSchema

GROUP_STATUSES = ("draft", "ready_for_review", "approved", "filed", "accepted", "rejected")


class EntryGroupCreate(BaseModel):
    group_name: str
    group_description: Optional[str] = None
    week_ending_date: Optional[date] = None
    target_entry_date: Optional[date] = None
    filing_district_port: str
    entry_filer_code: str
    foreign_trade_zone_identifier: Optional[str] = None

    @field_validator("group_name", "filing_district_port", "entry_filer_code")
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("value is required")
        return value


class EntryGroupMemberAdd(BaseModel):
    preshipment_id: int
    assignment_notes: Optional[str] = None


class EntryGroupStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        value = (value or "").strip().lower()
        if value not in GROUP_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(GROUP_STATUSES)}")
        return value


class EntryGroupMember(BaseSchema):
    id: int
    preshipment_id: int
    assignment_notes: Optional[str] = None
    preshipment_status: Optional[str] = None
    preshipment_value: Decimal
    preshipment_parts_count: int
    validated: bool
    validation_warnings: Optional[List[str]] = None
    added_at: Optional[datetime] = None
    added_by: Optional[str] = None


class EntryGroup(BaseSchema):
    id: int
    group_name: str
    group_description: Optional[str] = None
    week_ending_date: Optional[date] = None
    target_entry_date: Optional[date] = None
    filing_district_port: str
    entry_filer_code: str
    foreign_trade_zone_identifier: Optional[str] = None
    status: str
    entry_number: Optional[str] = None
    filed_at: Optional[datetime] = None
    filed_by: Optional[str] = None
    estimated_total_value: Decimal
    estimated_total_duties: Decimal
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    members: List[EntryGroupMember] = []
