from decimal import Decimal

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftz_outbound.db.base import Base
from ftz_outbound.models.master_data import Customer
from ftz_outbound.models.mixins import AuditMixin


class PreshipmentItem(Base):
    """
    One outbound line. `part_id` / `lot_id` are soft references: the part may
    be missing from the master (the entry builder skips such lines) and the
    lot may be unknown (inventory decrement skips it).
    """
    __tablename__ = "preshipment_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    preshipment_id: Mapped[int] = mapped_column(
        ForeignKey("preshipments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_number: Mapped[int] = mapped_column(Integer, nullable=False)

    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lot_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    unit_of_measure: Mapped[str | None] = mapped_column(String(10), nullable=True)
    unit_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    total_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Classification as declared on the shipment
    hts_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country_of_origin: Mapped[str | None] = mapped_column(String(2), nullable=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duty_rate: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    duty_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    header: Mapped["Preshipment"] = relationship("Preshipment", back_populates="items")

    def __repr__(self) -> str:
        return f"<PreshipmentItem(preshipment={self.preshipment_id}, item={self.item_number})>"


class Preshipment(AuditMixin, Base):
    """
    Outbound shipment tracked through staging until driver sign-off.
    Never deleted; `Shipped` rows are kept for audit.
    """
    __tablename__ = "preshipments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shipment_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    shipment_type: Mapped[str] = mapped_column(String(40), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)

    stage: Mapped[str] = mapped_column(String(20), nullable=False, default="Planning", index=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="Normal")
    requested_ship_date: Mapped[object | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ACE filing fields
    filing_district_port: Mapped[str | None] = mapped_column(String(4), nullable=True)
    entry_filer_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    importer_of_record_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    foreign_trade_zone_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    entry_type_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    date_of_importation: Mapped[object | None] = mapped_column(Date, nullable=True)
    consolidated_entry: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Transportation
    bill_of_lading_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    voyage_flight_trip_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    carrier_code: Mapped[str | None] = mapped_column(String(4), nullable=True)
    importing_conveyance_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mode_of_transportation: Mapped[str | None] = mapped_column(String(2), nullable=True)
    port_of_unlading: Mapped[str | None] = mapped_column(String(4), nullable=True)

    # Parties
    manufacturer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manufacturer_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bond_type_code: Mapped[str | None] = mapped_column(String(1), nullable=True)
    surety_company_code: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Staging
    staging_location: Mapped[str | None] = mapped_column(String(50), nullable=True)
    staging_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    staged_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ready_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    staged_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)

    # Driver sign-off (populated only at finalization)
    driver_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    driver_license_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    license_plate_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    carrier_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    driver_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    shipped_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    signed_off_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Entry summary link (no FK: entry_summaries already points back here)
    entry_summary_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    entry_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    entry_summary_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="NOT_PREPARED"
    )

    customer: Mapped["Customer"] = relationship("Customer")
    items: Mapped[list["PreshipmentItem"]] = relationship(
        "PreshipmentItem",
        back_populates="header",
        cascade="all, delete-orphan",
        order_by="PreshipmentItem.item_number",
    )
    stage_history = relationship(
        "PreshipmentStageAudit",
        back_populates="preshipment",
        cascade="all, delete-orphan",
        order_by="PreshipmentStageAudit.id",
    )

    def __repr__(self) -> str:
        return f"<Preshipment(shipment_id='{self.shipment_id}', stage='{self.stage}')>"


class PreshipmentStageAudit(Base):
    """One row per accepted stage change."""
    __tablename__ = "preshipment_stage_audit"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    preshipment_id: Mapped[int] = mapped_column(ForeignKey("preshipments.id"), nullable=False, index=True)
    from_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    to_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())
    changed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    preshipment: Mapped["Preshipment"] = relationship("Preshipment", back_populates="stage_history")


class ShipmentCompletion(Base):
    """Completion audit record written after driver sign-off."""
    __tablename__ = "shipment_completions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    preshipment_id: Mapped[int] = mapped_column(ForeignKey("preshipments.id"), nullable=False, index=True)
    shipment_id: Mapped[str] = mapped_column(String(50), nullable=False)
    completed_at: Mapped[object] = mapped_column(DateTime, nullable=False)
    driver_name: Mapped[str] = mapped_column(String(100), nullable=False)
    driver_license: Mapped[str] = mapped_column(String(50), nullable=False)
    license_plate: Mapped[str] = mapped_column(String(20), nullable=False)
    completed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
