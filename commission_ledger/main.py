from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from commission_ledger.config import settings
from commission_ledger.api.v1.router import api_router
from commission_ledger.core.exceptions import (
    ConflictError,
    InsufficientFundsError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from commission_ledger.api.deps import DB
from commission_ledger.database import init_db


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Most specific first; LedgerError itself falls through to 400
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (ConflictError, 409),
    (InsufficientFundsError, 422),
    (NotFoundError, 404),
    (StateError, 409),
    (PersistenceError, 503),
)

PERSISTENCE_RETRY_AFTER_SECONDS = 1


def status_code_for(exc: LedgerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create missing ledger tables (migrations own schema changes in production)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")


API_DESCRIPTION = """
## Commission Ledger API

Tracks commissions owed to vendors and settles vendor withdrawal requests.

| Area | Description |
|------|-------------|
| **Commissions** | Accrual, vendor history, balances and reports |
| **Withdrawals** | Vendor requests, FIFO commission allocation, cancellation |
| **Settlement** | Admin approval (payout) and rejection |

Amounts are decimals with two places. Caller identity (vendor id, admin id)
is supplied by the caller; authentication happens upstream.

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Validation failed |
| 404 | Commission or withdrawal not found |
| 409 | Pending withdrawal already exists, or record not in the required state |
| 422 | Insufficient available commission (or malformed request body) |
| 503 | Storage failure, safe to retry once |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Translate ledger errors into JSON responses."""
    status_code = status_code_for(exc)

    error_detail = {
        "error": exc.message,
        "type": type(exc).__name__,
        "details": exc.details,
        "path": str(request.url.path),
    }

    headers = None
    if exc.retryable:
        headers = {"Retry-After": str(PERSISTENCE_RETRY_AFTER_SECONDS)}

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc.message}")

    return JSONResponse(status_code=status_code, content=error_detail, headers=headers)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(db: DB):
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["checks"]["database"] = "connected"
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Health check database error: {e!r}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
