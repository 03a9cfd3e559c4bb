from fastapi import APIRouter

from ftz_outbound.api.v1.endpoints import entry_groups, entry_summaries, preshipments, shipping

api_router = APIRouter()

# Outbound workflow
api_router.include_router(preshipments.router, prefix="/preshipments", tags=["Preshipments"])
api_router.include_router(shipping.router, prefix="/shipping", tags=["Shipping"])

# Customs filings
api_router.include_router(entry_summaries.router, prefix="/entry-summaries", tags=["Entry Summaries"])
api_router.include_router(entry_groups.router, prefix="/entry-summary-groups", tags=["Entry Summary Groups"])
