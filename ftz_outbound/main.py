from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ftz_outbound.api.routers.number_range import router as number_range_router
from ftz_outbound.api.v1.endpoints.api import api_router

app = FastAPI(title="FTZ Outbound Compliance API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # For development; restrict to the UI origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")
app.include_router(number_range_router)

@app.get("/health")
def health():
    return {"status": "up"}
