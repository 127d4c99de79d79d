import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.database import engine, Base
from app.core.exceptions import (
    AccountNotFoundError,
    AccountStorageError,
    AccountValidationError,
    DuplicateEmailError,
)
from app.core.scheduler import start_scheduler, stop_scheduler
from app.api.routes import accounts

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables from all models that inherit from Base
# In production, use migrations (Alembic) instead of create_all
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: Start background scheduler for orphaned photo cleanup
    Shutdown: Stop background scheduler
    """
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="EcoSystem API",
    description="Accounts backend for the EcoSystem client application",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - allows frontend to make requests to backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# All routes are prefixed with /api for consistency
app.include_router(accounts.router, prefix="/api")


@app.exception_handler(AccountNotFoundError)
async def account_not_found_handler(request: Request, exc: AccountNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(DuplicateEmailError)
async def duplicate_email_handler(request: Request, exc: DuplicateEmailError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(AccountValidationError)
async def account_validation_handler(request: Request, exc: AccountValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message, "errors": exc.errors})


@app.exception_handler(AccountStorageError)
async def account_storage_handler(request: Request, exc: AccountStorageError):
    # Full cause is logged; the client only sees a generic message
    logger.error(f"Storage failure on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "EcoSystem API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
