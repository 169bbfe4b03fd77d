"""FastAPI application entry point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import portfolio, share_lots, stocks, transactions, users
from config import settings
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Stock Ledger",
    description="Share-lot tracking and realized earnings for a personal stock portfolio",
    version="0.1.0",
)

# CORS configuration for the React frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(stocks.router)
app.include_router(transactions.router)
app.include_router(share_lots.router)
app.include_router(portfolio.router)
app.include_router(users.router)

logger.info("Stock Ledger API configured (environment=%s)", settings.ENVIRONMENT)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
