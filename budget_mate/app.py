# app.py (Budget Mate Allocation Backend)

import logging
from fastapi import FastAPI, Depends
from contextlib import asynccontextmanager # For DB lifecycle management

from . import config
from .api.dependencies import verify_api_key
from .db.database import dispose_engine

logger = logging.getLogger(__name__)


# --- Application Lifespan Context ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # ----------------------------------------
    # STARTUP: Logging. The engine is created lazily on the first request.
    # ----------------------------------------
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Application Startup: allocation engine ready.")

    yield

    # ----------------------------------------
    # SHUTDOWN: Database Cleanup
    # ----------------------------------------
    logger.info("Application Shutdown: disposing database engine.")
    await dispose_engine()


# IMPORT V1 Routers
from .api.v1.allocations import router as v1_allocations_router
from .api.v1.envelopes import router as v1_envelopes_router


app = FastAPI(
    title="Budget Mate Allocation Backend",
    description="Envelope budgeting engine: waterfall allocation, ideal per-pay amounts, gap tracking and opening balances.",
    version="1.0.0",
    lifespan=lifespan,
)


# Root Endpoint (basic health check)
@app.get("/", tags=["Health"])
def read_root():
    return {"message": "Budget Mate allocation backend is running. Access endpoints at /api/v1/..."}

# -----------------------------------------------------------
# ROUTER REGISTRATION
# -----------------------------------------------------------

# Every API route requires the X-API-Key header; the health check stays public
API_SECURITY = [Depends(verify_api_key)]

app.include_router(v1_allocations_router, prefix="/api/v1", dependencies=API_SECURITY)
app.include_router(v1_envelopes_router, prefix="/api/v1", dependencies=API_SECURITY)
