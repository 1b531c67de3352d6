"""
FastAPI application factory.

Uses lifespan context manager (preferred over on_event decorators)
to handle startup/shutdown tasks cleanly.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from expense_api.errors import register_exception_handlers
from expense_api.middleware import register_request_logging
from expense_api.routers import admin, auth, expenses, health, lookups, ocr, profiles
from expense_api.settings import settings

# ── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting Expense API [env=%s]", settings.environment)

    from expense_api.database import check_db_connection

    if not check_db_connection():
        logger.error("Database is not reachable on startup: check DATABASE_URL")
    else:
        logger.info("Database connection verified")

    if not settings.ocr_enabled:
        logger.warning("ANTHROPIC_API_KEY is not set; /api/ocr endpoints will return 503")

    yield  # ── Application runs here ──

    logger.info("Shutting down Expense API")


# ── App factory ───────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title="Expense Management API",
        description=(
            "Submission, review and reimbursement of ministry expenses. "
            "Receipts and invoices can be pre-filled by a vision OCR model."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    # ── CORS ──────────────────────────────────────────────────────────────────
    # Dev: allow all origins. Staging/prod: explicit allowlist from ALLOWED_ORIGINS env var.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    register_request_logging(app)
    register_exception_handlers(app)

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(expenses.router)
    app.include_router(admin.router)
    app.include_router(profiles.router)
    app.include_router(lookups.router)
    app.include_router(ocr.router)

    # ── Uploaded receipts ─────────────────────────────────────────────────────
    if settings.storage_backend == "local":
        os.makedirs(settings.local_storage_path, exist_ok=True)
        app.mount(
            settings.upload_url_prefix,
            StaticFiles(directory=settings.local_storage_path),
            name="uploads",
        )

    return app


app = create_app()
