from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ftz_outbound.db.session import get_db
from ftz_outbound.services.number_range_get import NumberRangeService
from ftz_outbound.schemas.number_range import (
    NumberRangeCreate,
    NumberRangeUpdate,
    NumberRangeResponse
)

# Entry-number sequences live here alongside any other document ranges
router = APIRouter(
    prefix="/api/v1/sys-number-ranges",
    tags=["System Settings - Number Ranges"]
)

@router.get("", response_model=list[NumberRangeResponse])
def fetch_all_ranges(db: Session = Depends(get_db)):
    """List all configured sequences (ENTRY and any others)."""
    return NumberRangeService.list_ranges(db)


@router.post("/next")
def get_next_number(
    doc_category: str,
    doc_type_id: int = 0,
    db: Session = Depends(get_db),
):
    """
    Consume the next number of a category/type pair.
    """
    try:
        next_number = NumberRangeService.get_next_number(db, doc_category, doc_type_id)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    return {"next_number": next_number}

@router.post("", response_model=NumberRangeResponse, status_code=status.HTTP_201_CREATED)
def create_range_config(payload: NumberRangeCreate, db: Session = Depends(get_db)):
    """Register a new sequence for a Doc Category + Type ID pair."""
    try:
        return NumberRangeService.create_range(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.patch("/{range_id}", response_model=NumberRangeResponse)
def modify_range_config(range_id: int, payload: NumberRangeUpdate, db: Session = Depends(get_db)):
    """Update prefix or toggle activity without resetting the counter."""
    updated = NumberRangeService.update_range(db, range_id, payload)
    if not updated:
        raise HTTPException(status_code=404, detail="Sequence configuration not found")
    return updated

@router.delete("/{range_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_range_config(range_id: int, db: Session = Depends(get_db)):
    """Delete a sequence configuration."""
    deleted = NumberRangeService.delete_range(db, range_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Sequence configuration not found")
    return None
