"""
POS Payments: payment transaction processing API.

Routes point-of-sale orders to external payment providers (Sadad, Sep),
tracks every attempt through its lifecycle (retry, refund, cancellation,
dispute) and guards against double charging.

Start the server:
    uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.health import router as health_router
from app.api.orders import router as orders_router
from app.api.payments import router as payments_router
from app.api.validation import router as validation_router
from app.config import settings
from app.database import async_session, init_db
from app.engine.orchestrator import PaymentOrchestrator
from app.providers.factory import build_adapters

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database and the provider registry on startup."""
    await init_db()
    adapters = build_adapters(settings)
    app.state.orchestrator = PaymentOrchestrator(
        async_session,
        adapters,
        max_transaction_amount=settings.max_transaction_amount,
    )
    yield
    for adapter in adapters.values():
        await adapter.client.aclose()


app = FastAPI(
    title="POS Payments",
    description=(
        "Payment transaction processing for point-of-sale orders: provider routing, "
        "idempotent charging, retries, refunds, cancellation and dispute tracking."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(validation_router)
