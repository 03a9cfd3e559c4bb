from decimal import Decimal

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftz_outbound.db.base import Base
from ftz_outbound.models.mixins import AuditMixin


class EntrySummary(AuditMixin, Base):
    """
    CBP entry summary header (ACE AE transaction, FTZ type 06).
    Provenance is either a single preshipment or an entry summary group.
    """
    __tablename__ = "entry_summaries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    entry_type_code: Mapped[str] = mapped_column(String(2), nullable=False, default="06")
    summary_filing_action_request_code: Mapped[str] = mapped_column(String(1), nullable=False, default="A")
    record_district_port_of_entry: Mapped[str] = mapped_column(String(4), nullable=False)
    entry_filer_code: Mapped[str] = mapped_column(String(3), nullable=False)
    consolidated_summary_indicator: Mapped[str] = mapped_column(String(1), nullable=False, default="N")
    importer_of_record_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    consignee_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    date_of_importation: Mapped[object | None] = mapped_column(Date, nullable=True)
    foreign_trade_zone_identifier: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Transportation (representative values on consolidated entries)
    bill_of_lading_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    voyage_flight_trip_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    carrier_code: Mapped[str | None] = mapped_column(String(4), nullable=True)
    importing_conveyance_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mode_of_transportation: Mapped[str | None] = mapped_column(String(2), nullable=True)
    port_of_unlading: Mapped[str | None] = mapped_column(String(4), nullable=True)

    manufacturer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manufacturer_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seller_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bond_type_code: Mapped[str | None] = mapped_column(String(1), nullable=True)
    surety_company_code: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # DRAFT -> FILED -> ACCEPTED | REJECTED
    filing_status: Mapped[str] = mapped_column(String(10), nullable=False, default="DRAFT", index=True)
    filed_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    accepted_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    ace_response_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    preshipment_id: Mapped[int | None] = mapped_column(ForeignKey("preshipments.id"), nullable=True, index=True)
    group_id: Mapped[int | None] = mapped_column(ForeignKey("entry_summary_groups.id"), nullable=True, index=True)

    line_items: Mapped[list["EntrySummaryLineItem"]] = relationship(
        "EntrySummaryLineItem",
        back_populates="entry_summary",
        cascade="all, delete-orphan",
        order_by="EntrySummaryLineItem.line_number",
    )
    grand_totals: Mapped["EntryGrandTotals"] = relationship(
        "EntryGrandTotals",
        back_populates="entry_summary",
        cascade="all, delete-orphan",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<EntrySummary(entry_number='{self.entry_number}', status='{self.filing_status}')>"


class EntrySummaryLineItem(Base):
    __tablename__ = "entry_summary_line_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_summary_id: Mapped[int] = mapped_column(
        ForeignKey("entry_summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    hts_code: Mapped[str] = mapped_column(String(12), nullable=False)
    country_of_origin: Mapped[str] = mapped_column(String(3), nullable=False)
    commodity_description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    unit_of_measure: Mapped[str | None] = mapped_column(String(10), nullable=True)
    unit_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    duty_rate: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False, default=0)
    duty_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    antidumping_duty_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    countervailing_duty_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lot_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Consolidated filings only
    source_preshipments: Mapped[list | None] = mapped_column(JSON, nullable=True)
    source_customers: Mapped[str | None] = mapped_column(Text, nullable=True)
    consolidated_from_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())

    entry_summary: Mapped["EntrySummary"] = relationship("EntrySummary", back_populates="line_items")
    ftz_status: Mapped["FtzStatusRecord"] = relationship(
        "FtzStatusRecord",
        back_populates="line_item",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        UniqueConstraint("entry_summary_id", "line_number", name="uix_entry_line_number"),
    )


class FtzStatusRecord(Base):
    """FTZ merchandise status per entry line (P / N / D)."""
    __tablename__ = "ftz_status_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_line_item_id: Mapped[int] = mapped_column(
        ForeignKey("entry_summary_line_items.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    ftz_line_item_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    ftz_merchandise_status_code: Mapped[str] = mapped_column(String(1), nullable=False, default="P")
    privileged_ftz_merchandise_filing_date: Mapped[object | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())

    line_item: Mapped["EntrySummaryLineItem"] = relationship("EntrySummaryLineItem", back_populates="ftz_status")


class EntryGrandTotals(Base):
    """Derived totals, 1:1 with the entry summary. Never edited directly."""
    __tablename__ = "entry_grand_totals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_summary_id: Mapped[int] = mapped_column(
        ForeignKey("entry_summaries.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    total_entered_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    grand_total_duty_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    grand_total_user_fee_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    grand_total_tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    grand_total_antidumping_duty_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    grand_total_countervailing_duty_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    estimated_total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    calculated_at: Mapped[object] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    entry_summary: Mapped["EntrySummary"] = relationship("EntrySummary", back_populates="grand_totals")
