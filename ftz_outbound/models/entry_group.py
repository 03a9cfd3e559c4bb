from decimal import Decimal

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftz_outbound.db.base import Base
from ftz_outbound.models.mixins import AuditMixin
from ftz_outbound.models.preshipment import Preshipment


class EntrySummaryGroup(AuditMixin, Base):
    """
    Named batch of preshipments filed as one consolidated entry summary.
    Status: draft -> ready_for_review -> approved -> filed (or rejected).
    """
    __tablename__ = "entry_summary_groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    group_name: Mapped[str] = mapped_column(String(120), nullable=False)
    group_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    week_ending_date: Mapped[object | None] = mapped_column(Date, nullable=True)
    target_entry_date: Mapped[object | None] = mapped_column(Date, nullable=True)

    filing_district_port: Mapped[str] = mapped_column(String(4), nullable=False)
    entry_filer_code: Mapped[str] = mapped_column(String(3), nullable=False)
    foreign_trade_zone_identifier: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    entry_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    filed_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    filed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    estimated_total_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    estimated_total_duties: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    members: Mapped[list["EntryGroupPreshipment"]] = relationship(
        "EntryGroupPreshipment",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="EntryGroupPreshipment.id",
    )

    def __repr__(self) -> str:
        return f"<EntrySummaryGroup(id={self.id}, name='{self.group_name}', status='{self.status}')>"


class EntryGroupPreshipment(Base):
    """Group membership with a snapshot of the preshipment at assignment time."""
    __tablename__ = "entry_group_preshipments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("entry_summary_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    preshipment_id: Mapped[int] = mapped_column(ForeignKey("preshipments.id"), nullable=False, index=True)

    assignment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    preshipment_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    preshipment_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    preshipment_parts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validation_warnings: Mapped[list | None] = mapped_column(JSON, nullable=True)

    added_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())
    added_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    group: Mapped["EntrySummaryGroup"] = relationship("EntrySummaryGroup", back_populates="members")
    preshipment: Mapped["Preshipment"] = relationship("Preshipment")

    __table_args__ = (
        UniqueConstraint("group_id", "preshipment_id", name="uix_group_preshipment"),
    )
