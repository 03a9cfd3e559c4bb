from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ftz_outbound.core.exceptions import OutboundWorkflowError, PersistenceError
from ftz_outbound.models.mixins import SYSTEM_USER
from ftz_outbound.schemas.preshipment import DriverSignoffRequest
from ftz_outbound.services.entry_group_service import EntrySummaryGroupOrchestrator
from ftz_outbound.services.entry_summary_builder import EntrySummaryBuilder
from ftz_outbound.services.preshipment_service import PreshipmentService
from ftz_outbound.services.shipment_finalizer import FinalizationResult, ShipmentFinalizer

logger = logging.getLogger(__name__)

DEFAULT_USER = SYSTEM_USER


@dataclass
class OperationResult:
    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    status_code: int = 200
    details: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, exc: OutboundWorkflowError) -> "OperationResult":
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            status_code=exc.status_code,
            details=dict(exc.details),
        )

    def to_detail(self) -> dict:
        detail = {"code": self.error_code, "message": self.error}
        detail.update(self.details)
        return detail


def _persistence_error(exc: SQLAlchemyError) -> PersistenceError:
    if isinstance(exc, IntegrityError):
        return PersistenceError(
            code="UniqueViolation",
            message=f"Record conflicts with existing data: {exc.orig}",
            status_code=409,
        )
    return PersistenceError(code="PersistenceError", message=str(exc), status_code=500)


class OutboundComplianceEngine:
    """
    Caller-facing entry point for the four workflow operations. Each call is
    one unit of work: committed on success, rolled back on any failure, and
    reported as an OperationResult instead of raising.
    """

    def __init__(self, db: Session):
        self.db = db
        self.preshipments = PreshipmentService(db)
        self.finalizer = ShipmentFinalizer(db)
        self.builder = EntrySummaryBuilder(db)
        self.orchestrator = EntrySummaryGroupOrchestrator(db)

    def _run(self, operation: str, action: Callable[[], Any]) -> OperationResult:
        try:
            data = action()
            self.db.commit()
        except OutboundWorkflowError as exc:
            self.db.rollback()
            logger.info("Operation rejected operation=%s code=%s message=%s", operation, exc.code, exc.message)
            return OperationResult.from_error(exc)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Operation failed operation=%s", operation)
            return OperationResult.from_error(_persistence_error(exc))
        except Exception:
            self.db.rollback()
            logger.exception("Operation aborted operation=%s", operation)
            raise
        return OperationResult.ok(data)

    def transition_stage(
        self,
        shipment_id: str,
        target_stage: str,
        *,
        user_email: str = DEFAULT_USER,
        staging_location: str | None = None,
        staging_notes: str | None = None,
        staged_by: str | None = None,
    ) -> OperationResult:
        return self._run(
            "transition_stage",
            lambda: self.preshipments.transition_stage(
                shipment_id,
                target_stage,
                user_email=user_email,
                staging_location=staging_location,
                staging_notes=staging_notes,
                staged_by=staged_by,
            ),
        )

    def finalize_shipment(
        self,
        shipment_id: str,
        signoff: DriverSignoffRequest,
        *,
        user_email: str = DEFAULT_USER,
    ) -> OperationResult:
        result = self._run(
            "finalize_shipment",
            lambda: self.finalizer.finalize(shipment_id, signoff, user_email=user_email),
        )
        if result.success:
            finalization: FinalizationResult = result.data
            for warning in finalization.warnings:
                logger.warning("Signoff side effect incomplete shipment_id=%s %s", shipment_id, warning)
        return result

    def build_entry_summary_from_preshipment(
        self,
        preshipment_id: int,
        *,
        user_email: str = DEFAULT_USER,
    ) -> OperationResult:
        return self._run(
            "build_entry_summary_from_preshipment",
            lambda: self.builder.build_from_preshipment(preshipment_id, user_email=user_email),
        )

    def build_entry_summary_from_group(
        self,
        group_id: int,
        *,
        user_email: str = DEFAULT_USER,
    ) -> OperationResult:
        return self._run(
            "build_entry_summary_from_group",
            lambda: self.orchestrator.build_from_group(group_id, user_email=user_email),
        )
