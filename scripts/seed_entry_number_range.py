from ftz_outbound.core.config import settings
from ftz_outbound.db.session import SessionLocal
from ftz_outbound.models.number_range import SysNumberRange
from ftz_outbound.services.number_range_get import DEFAULT_TYPE_ID, ENTRY_CATEGORY


def _ensure_range(db, category: str, type_id: int, prefix: str, padding: int, include_year: bool):
    existing = (
        db.query(SysNumberRange)
        .filter(SysNumberRange.doc_category == category)
        .filter(SysNumberRange.doc_type_id == type_id)
        .first()
    )
    if existing:
        return False
    db.add(
        SysNumberRange(
            doc_category=category,
            doc_type_id=type_id,
            prefix=prefix,
            current_value=0,
            padding=padding,
            include_year=include_year,
            is_active=True,
        )
    )
    return True


def main():
    db = SessionLocal()
    try:
        created = 0
        if _ensure_range(
            db,
            ENTRY_CATEGORY,
            DEFAULT_TYPE_ID,
            settings.ENTRY_NUMBER_PREFIX,
            settings.ENTRY_NUMBER_PADDING,
            settings.ENTRY_NUMBER_INCLUDE_YEAR,
        ):
            created += 1

        db.commit()
        print(f"Seed complete. Added {created} ranges.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
