import logging

from sqlalchemy.orm import Session
from sqlalchemy import select
from datetime import datetime

from ftz_outbound.core.config import settings
from ftz_outbound.core.exceptions import entry_number_range_inactive
from ftz_outbound.models import SysNumberRange
from ftz_outbound.schemas.number_range import NumberRangeCreate, NumberRangeUpdate

logger = logging.getLogger(__name__)

ENTRY_CATEGORY = "ENTRY"
DEFAULT_TYPE_ID = 0


class NumberRangeService:
    @staticmethod
    def get_next_number(db: Session, category: str, type_id: int = DEFAULT_TYPE_ID) -> str:
        """
        Atomic Read-Lock-Update to generate the next document number.
        """
        # Row-level lock (SELECT ... FOR UPDATE); held until the caller commits
        stmt = (
            select(SysNumberRange)
            .where(SysNumberRange.doc_category == category)
            .where(SysNumberRange.doc_type_id == type_id)
            .where(SysNumberRange.is_active.is_(True))
            .with_for_update()
        )
        range_config = db.execute(stmt).scalar_one_or_none()

        if not range_config:
            raise ValueError(f"No active number range found for {category} with type {type_id}")

        range_config.current_value = (range_config.current_value or 0) + 1
        db.flush()

        padded_number = str(range_config.current_value).zfill(range_config.padding)
        year_str = f"{datetime.now().year}-" if range_config.include_year else ""
        return f"{range_config.prefix}{year_str}{padded_number}"

    @staticmethod
    def ensure_entry_range(db: Session) -> SysNumberRange:
        """Provision the entry-number sequence from settings if it does not exist yet."""
        existing = db.execute(
            select(SysNumberRange)
            .where(SysNumberRange.doc_category == ENTRY_CATEGORY)
            .where(SysNumberRange.doc_type_id == DEFAULT_TYPE_ID)
        ).scalar_one_or_none()
        if existing is not None:
            return existing

        range_config = SysNumberRange(
            doc_category=ENTRY_CATEGORY,
            doc_type_id=DEFAULT_TYPE_ID,
            prefix=settings.ENTRY_NUMBER_PREFIX,
            current_value=0,
            padding=settings.ENTRY_NUMBER_PADDING,
            include_year=settings.ENTRY_NUMBER_INCLUDE_YEAR,
            is_active=True,
        )
        db.add(range_config)
        db.flush()
        logger.info(
            "Provisioned entry number range prefix=%s padding=%s",
            range_config.prefix,
            range_config.padding,
        )
        return range_config

    @staticmethod
    def next_entry_number(db: Session) -> str:
        range_config = NumberRangeService.ensure_entry_range(db)
        if not range_config.is_active:
            raise entry_number_range_inactive(ENTRY_CATEGORY, DEFAULT_TYPE_ID)
        try:
            return NumberRangeService.get_next_number(db, ENTRY_CATEGORY, DEFAULT_TYPE_ID)
        except ValueError as exc:
            raise entry_number_range_inactive(ENTRY_CATEGORY, DEFAULT_TYPE_ID) from exc

    @staticmethod
    def list_ranges(db: Session):
        return db.query(SysNumberRange).order_by(SysNumberRange.id).all()

    @staticmethod
    def create_range(db: Session, schema: NumberRangeCreate):
        # One sequence per category/type combo
        existing = db.query(SysNumberRange).filter(
            SysNumberRange.doc_category == schema.doc_category,
            SysNumberRange.doc_type_id == schema.doc_type_id
        ).first()

        if existing:
            raise ValueError("A sequence already exists for this category and type.")

        new_range = SysNumberRange(**schema.model_dump())
        db.add(new_range)
        db.commit()
        db.refresh(new_range)
        return new_range

    @staticmethod
    def update_range(db: Session, range_id: int, schema: NumberRangeUpdate):
        db_range = db.query(SysNumberRange).filter(SysNumberRange.id == range_id).first()
        if not db_range:
            return None

        for key, value in schema.model_dump(exclude_unset=True).items():
            setattr(db_range, key, value)

        db.commit()
        db.refresh(db_range)
        return db_range

    @staticmethod
    def delete_range(db: Session, range_id: int) -> bool:
        db_range = db.query(SysNumberRange).filter(SysNumberRange.id == range_id).first()
        if not db_range:
            return False

        db.delete(db_range)
        db.commit()
        return True
