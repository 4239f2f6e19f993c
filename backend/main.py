"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import bank_links, plaid, reconciliation, transfers, users
from config import settings
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report missing provider credentials on startup."""
    if not (settings.PLAID_CLIENT_ID and settings.PLAID_SECRET):
        logger.warning("Plaid credentials are not configured; account endpoints will return 400")
    if not (settings.DWOLLA_KEY and settings.DWOLLA_SECRET):
        logger.warning("Dwolla credentials are not configured; linking and transfers will return 400")
    logger.info(
        "BankBridge starting (environment=%s, plaid=%s, dwolla=%s)",
        settings.ENVIRONMENT,
        settings.PLAID_ENVIRONMENT,
        settings.DWOLLA_ENVIRONMENT,
    )
    yield


app = FastAPI(
    title="BankBridge",
    description="Linked bank accounts, transaction history and transfers",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(users.router)
app.include_router(bank_links.router)
app.include_router(plaid.router)
app.include_router(transfers.router)
app.include_router(reconciliation.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
