"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from datetime import datetime
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.contracts_router import router as contracts_router
from src.api.dependencies import api_key_protection
from src.api.endpoints.payments import payments_api
from src.error_handler import ErrorHandler
from src.integrations.clients.registry import PaymentProviderRegistry
from src.integrations.email.email_service import build_email_sender
from src.lifecycle.errors import LifecycleError
from src.lifecycle.notifications import NotificationTrigger
from src.lifecycle.payments import PaymentOrchestrator
from src.lifecycle.state_machine import ContractService
from src.utils.config_loader import load_settings

# Setup logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

settings = load_settings()

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.platform_name} Contracts API",
    description="Contract signing and payment collection",
    version="1.0.0",
    dependencies=[Depends(api_key_protection)],  # protect everything by default
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

# Use real Postgres when env is set, else the in-memory stub
if os.getenv("DATABASE_URL") and os.getenv("USE_POSTGRES", "").lower() in ("1", "true", "yes"):
    from src.database.postgres_real import PostgresDB

    postgres_db = PostgresDB(connection_string=os.environ["DATABASE_URL"])
else:
    from src.database.postgres import PostgresDB

    postgres_db = PostgresDB()

email_sender = build_email_sender(settings.email)
notifier = NotificationTrigger(email_sender, settings.app_base_url, platform_name=settings.platform_name)
contract_service = ContractService(postgres_db, notifier, contract_segment=settings.contract_segment)
payment_registry = PaymentProviderRegistry.from_settings(settings)
payment_orchestrator = PaymentOrchestrator(postgres_db, payment_registry, contract_service)

app.state.settings = settings
app.state.db = postgres_db
app.state.contract_service = contract_service
app.state.payment_orchestrator = payment_orchestrator

app.include_router(contracts_router, prefix="/api/v1")
app.include_router(payments_api, prefix="/api/v1/payments", tags=["Payments"])

error_handler = ErrorHandler()


# ============================================================================
# ERROR HANDLING
# ============================================================================

@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    status_code, payload = error_handler.handle_exception(exc)
    return JSONResponse(status_code=status_code, content=payload)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    status_code, payload = error_handler.handle_exception(exc, context={"path": request.url.path})
    return JSONResponse(status_code=status_code, content=payload)


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/", tags=["Health"])
async def root():
    return {"service": app.title, "status": "healthy", "version": "1.0.0", "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "database": type(app.state.db).__module__.rsplit(".", 1)[-1],
        "timestamp": datetime.now().isoformat(),
    }


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info("Starting %s...", app.title)

    db_url = os.getenv("DATABASE_URL", "")
    if db_url and os.getenv("USE_POSTGRES"):
        parsed = urlparse(db_url)
        logger.info(
            "DATABASE_URL target: scheme=%s host=%s port=%s db=%s",
            parsed.scheme,
            parsed.hostname,
            parsed.port or 5432,
            (parsed.path or "").lstrip("/"),
        )
    else:
        logger.info("Using in-memory PostgresDB stub")

    try:
        app.state.db.create_tables()
        logger.info("Database tables initialized")
    except Exception as e:
        logger.error("Error initializing database: %s", e)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down %s...", app.title)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
