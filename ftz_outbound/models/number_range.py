from sqlalchemy import String, Integer, BigInteger, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ftz_outbound.db.base import Base


class SysNumberRange(Base):
    __tablename__ = "sys_number_ranges"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # High-level category: 'ENTRY', 'GROUP'
    doc_category: Mapped[str] = mapped_column(String(20), nullable=False)

    # Sub-type within the category (0 = default sequence)
    doc_type_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    prefix: Mapped[str] = mapped_column(String(10), nullable=False)  # e.g., 'FTZ'
    current_value: Mapped[int] = mapped_column(BigInteger, default=0)
    padding: Mapped[int] = mapped_column(Integer, default=8)         # e.g., 8 -> 00000001

    # Feature toggles for formatting
    include_year: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # One sequence per category/type pair
    __table_args__ = (
        UniqueConstraint('doc_category', 'doc_type_id', name='uix_category_type'),
    )
