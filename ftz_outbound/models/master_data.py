from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftz_outbound.db.base import Base


class Customer(Base):
    """
    Consignee / customer record. Maintained by the master-data module;
    the outbound engine only reads it.
    """
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ein: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name='{self.name}')>"


class Part(Base):
    """Part master. `standard_value` drives the entered value on entry lines."""
    __tablename__ = "parts"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    hts_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country_of_origin: Mapped[str | None] = mapped_column(String(2), nullable=True)
    standard_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    unit_of_measure: Mapped[str | None] = mapped_column(String(10), nullable=True)


class InventoryLot(Base):
    """FTZ inventory lot. Decremented when a preshipment is signed off."""
    __tablename__ = "inventory_lots"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    part_id: Mapped[str] = mapped_column(ForeignKey("parts.id"), nullable=False)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    current_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Available")

    # P = Privileged Foreign, N = Non-privileged Foreign, D = Domestic
    ftz_status: Mapped[str | None] = mapped_column(String(1), nullable=True)
    admission_date: Mapped[object | None] = mapped_column(Date, nullable=True)
    last_shipped_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)

    part: Mapped["Part"] = relationship("Part")
    transactions: Mapped[list["InventoryTransaction"]] = relationship(
        "InventoryTransaction", back_populates="lot"
    )


class InventoryTransaction(Base):
    """Ledger row paired with every lot quantity change."""
    __tablename__ = "inventory_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    lot_id: Mapped[str] = mapped_column(ForeignKey("inventory_lots.id"), nullable=False, index=True)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    resulting_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    lot: Mapped["InventoryLot"] = relationship("InventoryLot", back_populates="transactions")
