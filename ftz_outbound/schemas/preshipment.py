from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional
from datetime import date, datetime
from decimal import Decimal

from .base import BaseSchema

PRESHIPMENT_TYPES = ("7501 Consumption Entry", "7512 T&E Export")


class PreshipmentItemBase(BaseModel):
    part_id: Optional[str] = None
    lot_id: Optional[str] = None
    quantity: Decimal = Field(gt=0, max_digits=15, decimal_places=3)
    unit_of_measure: Optional[str] = None
    unit_value: Optional[Decimal] = None
    total_value: Optional[Decimal] = None
    hts_code: Optional[str] = None
    country_of_origin: Optional[str] = None
    description: Optional[str] = None
    duty_rate: Optional[Decimal] = None
    duty_amount: Optional[Decimal] = None

class PreshipmentItemCreate(PreshipmentItemBase):
    pass

class PreshipmentItem(PreshipmentItemBase, BaseSchema):
    id: int
    item_number: int


class PreshipmentBase(BaseModel):
    shipment_id: str
    shipment_type: str
    customer_id: int
    priority: str = "Normal"
    requested_ship_date: Optional[date] = None
    notes: Optional[str] = None

    # ACE filing
    filing_district_port: Optional[str] = None
    entry_filer_code: Optional[str] = None
    importer_of_record_number: Optional[str] = None
    foreign_trade_zone_id: Optional[str] = None
    entry_type_code: Optional[str] = None
    date_of_importation: Optional[date] = None
    consolidated_entry: bool = False

    # Transportation
    bill_of_lading_number: Optional[str] = None
    voyage_flight_trip_number: Optional[str] = None
    carrier_code: Optional[str] = None
    importing_conveyance_name: Optional[str] = None
    mode_of_transportation: Optional[str] = None
    port_of_unlading: Optional[str] = None

    # Parties
    manufacturer_name: Optional[str] = None
    manufacturer_address: Optional[str] = None
    seller_name: Optional[str] = None
    seller_address: Optional[str] = None
    bond_type_code: Optional[str] = None
    surety_company_code: Optional[str] = None

    @field_validator("shipment_type")
    @classmethod
    def validate_shipment_type(cls, value: str) -> str:
        if value not in PRESHIPMENT_TYPES:
            raise ValueError(f"shipment_type must be one of: {', '.join(PRESHIPMENT_TYPES)}")
        return value

    @field_validator("shipment_id")
    @classmethod
    def validate_shipment_id(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("shipment_id is required")
        return value

class PreshipmentCreate(PreshipmentBase):
    items: List[PreshipmentItemCreate] = []

class Preshipment(PreshipmentBase, BaseSchema):
    id: int
    stage: str
    items: List[PreshipmentItem] = []

    staging_location: Optional[str] = None
    staging_notes: Optional[str] = None
    staged_by: Optional[str] = None
    staged_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None

    driver_name: Optional[str] = None
    driver_license_number: Optional[str] = None
    license_plate_number: Optional[str] = None
    carrier_name: Optional[str] = None
    tracking_number: Optional[str] = None
    driver_notes: Optional[str] = None
    signature_data: Optional[dict[str, Any]] = None
    shipped_at: Optional[datetime] = None
    signed_off_by: Optional[str] = None

    entry_summary_id: Optional[int] = None
    entry_number: Optional[str] = None
    entry_summary_status: str = "NOT_PREPARED"

    created_by: Optional[str] = None
    last_changed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PreshipmentSummary(BaseSchema):
    id: int
    shipment_id: str
    shipment_type: str
    customer_id: int
    stage: str
    priority: str
    entry_number: Optional[str] = None
    entry_summary_status: str


class StageTransitionRequest(BaseModel):
    target_stage: str
    staging_location: Optional[str] = None
    staging_notes: Optional[str] = None
    staged_by: Optional[str] = None


class StageAudit(BaseSchema):
    id: int
    from_stage: str
    to_stage: str
    changed_at: Optional[datetime] = None
    changed_by: Optional[str] = None


class SignatureCapture(BaseModel):
    image: Optional[str] = None
    method: str = "digital"


class DriverSignoffRequest(BaseModel):
    """Signer fields are optional here so the service can report every missing one at once."""
    driver_name: Optional[str] = None
    driver_license_number: Optional[str] = None
    license_plate_number: Optional[str] = None
    carrier_name: Optional[str] = None
    tracking_number: Optional[str] = None
    driver_notes: Optional[str] = None
    signature_data: Optional[SignatureCapture] = None


class LotDecrement(BaseModel):
    lot_id: str
    previous_quantity: Decimal
    shipped_quantity: Decimal
    new_quantity: Decimal


class SignoffResponse(BaseModel):
    preshipment: Preshipment
    inventory_updated: bool
    completion_recorded: bool
    lot_decrements: List[LotDecrement] = []
    warnings: List[str] = []


class StageReference(BaseModel):
    stage: str
    next_stages: List[str]
