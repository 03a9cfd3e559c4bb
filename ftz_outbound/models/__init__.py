# Import the declarative base
from ftz_outbound.db.base import Base

# Import all models for Alembic/SQLAlchemy discovery
# Note: These imports are required so that they register themselves on Base.metadata
from ftz_outbound.models.master_data import (
    Customer,
    InventoryLot,
    InventoryTransaction,
    Part,
)
from ftz_outbound.models.preshipment import (
    Preshipment,
    PreshipmentItem,
    PreshipmentStageAudit,
    ShipmentCompletion,
)
from ftz_outbound.models.entry_group import EntryGroupPreshipment, EntrySummaryGroup
from ftz_outbound.models.entry_summary import (
    EntryGrandTotals,
    EntrySummary,
    EntrySummaryLineItem,
    FtzStatusRecord,
)
from ftz_outbound.models.number_range import SysNumberRange
