import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware

from commentguard.config import settings
from commentguard.database import Base, engine
from commentguard.models import guard_settings as _guard_settings_model  # noqa: F401
from commentguard.models import moderation_log as _moderation_log_model  # noqa: F401
from commentguard.schemas.moderation_schemas import (
    ModerateRequest,
    ModerateResponse,
    NotifyRequest,
    NotifyResponse,
)
from commentguard.services.ai_manager import available_providers
from commentguard.services.comment_processor import CommentProcessor
from commentguard.services.retention_service import retention_worker
from commentguard.api.dependencies import get_processor
from commentguard.api.security import verify_api_token, check_rate_limit
from commentguard.api.admin import router as admin_router
from commentguard.utils.logging_config import StructuredLogger, init_logging, request_id_var

# Initialize structured logging
init_logging()

logger = StructuredLogger(__name__)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.retention_worker_enabled:
        await retention_worker.start(interval_seconds=settings.retention_interval)
    yield
    await retention_worker.stop()


app = FastAPI(
    title="CommentGuard API",
    version="2.0.0",
    description="AI moderation gate for blog comments",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# Rate limit headers middleware
@app.middleware("http")
async def add_rate_limit_headers(request: Request, call_next):
    response = await call_next(request)
    if hasattr(request.state, "rate_limit_remaining"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
    return response


app.include_router(admin_router)


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info():
    """API status and configuration info."""
    return {
        "status": "ok",
        "version": "2.0.0",
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "rate_limit": {
            "requests": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window,
        },
        "providers": sorted(available_providers()),
    }


@app.post(
    "/comments/moderate",
    response_model=ModerateResponse,
    dependencies=[Depends(verify_api_token), Depends(check_rate_limit)],
)
def moderate_comment(
    request: ModerateRequest,
    processor: CommentProcessor = Depends(get_processor),
):
    """
    Comment gate. Returns the status the blog should store for a new
    comment; on any moderation failure the proposed status comes back
    unchanged.
    """
    result = processor.review_comment(
        request.proposed_status,
        request.comment,
        is_moderator=request.is_moderator,
    )

    return ModerateResponse(
        status=result.status,
        action=result.action.value if result.action else None,
        analysis=result.analysis,
    )


@app.post(
    "/comments/notify",
    response_model=NotifyResponse,
    dependencies=[Depends(verify_api_token)],
)
def comment_notification(
    request: NotifyRequest,
    processor: CommentProcessor = Depends(get_processor),
):
    """Whether the blog should send its new-comment e-mail for this comment."""
    return NotifyResponse(notify=processor.should_notify(request.notify, request.comment))
