# app/main.py

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Configuration and core
from app.clients.payment_gateway import payment_client
from app.core.config import settings as config
from app.core.exceptions import LedgerError
from app.core.logging_config import setup_logging
from app.core.redis import STARTUP_LOCK_KEY, redis_client

# FastAPI routers
from app.routers import cards, customers, payments, rules, transactions
from app.routers.webhooks import payment_webhook_router

# Background jobs
from app.services.payment_expiration import expire_pending_payments_task

# --- Initialization ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()


# --- Error handlers ---
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Domain rejections become JSON errors with the status code of the error class."""
    if exc.status_code >= 500:
        logger.warning(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error."},
    )


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    # Only one worker schedules background jobs
    is_main_worker = await redis_client.set(STARTUP_LOCK_KEY, "1", ex=60, nx=True)

    if is_main_worker:
        logger.info("This is the main worker. Starting the scheduler...")
        if not scheduler.running:
            scheduler.add_job(
                expire_pending_payments_task, 'interval', minutes=config.PENDING_SWEEP_INTERVAL_MINUTES
            )
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping scheduler setup.")

    yield

    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        await redis_client.delete(STARTUP_LOCK_KEY)
    else:
        logger.info("Secondary worker shutting down.")

    await payment_client.close()


# --- FastAPI application ---
app = FastAPI(
    title="QR Cashback Ledger Service",
    description="Cashback earning, balance ledger and payment link reconciliation for QR loyalty cards",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(LedgerError, ledger_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
api_router = APIRouter(prefix="/api")

api_router.include_router(transactions.router, tags=["Transactions"])
api_router.include_router(cards.router, tags=["Cards"])
api_router.include_router(customers.router, tags=["Customers"])
api_router.include_router(payments.router, tags=["Payments"])
api_router.include_router(rules.router, tags=["Rules"])
api_router.include_router(payments.public_router, tags=["Payment Links"])

app.include_router(api_router)

# Provider webhooks stay outside /api
app.include_router(payment_webhook_router, prefix="/internal/webhooks", tags=["Internal Webhooks"])
