"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.api.responses import marketplace_error_handler, request_validation_handler
from app.api.router import api_router
from app.config import get_settings
from app.db.engine import async_session_factory, engine, init_db
from app.errors import MarketplaceError
from app.services.bidding import expire_bids
from app.services.events import event_bus
from app.services.ws_manager import ws_manager

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _bid_expiry_checker(interval: float):
    """Background task: expire overdue pending bids."""
    while True:
        try:
            async with async_session_factory() as db:
                await expire_bids(db)
        except Exception:
            logger.exception("Bid expiry sweep failed")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    unsubscribe = event_bus.subscribe(None, ws_manager.forward_event)
    expiry_task = asyncio.create_task(
        _bid_expiry_checker(_settings.bidding.sweep_interval_seconds)
    )
    logger.info("Marketplace service started")
    yield
    expiry_task.cancel()
    unsubscribe()
    await engine.dispose()


app = FastAPI(
    title="Tackle Market",
    description="Service marketplace: contractor bidding, job stage tracking, extra parts and payment.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(MarketplaceError, marketplace_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# API routes
app.include_router(api_router)


@app.get("/api/health")
async def health():
    return {"data": {"status": "ok"}, "error": None}
