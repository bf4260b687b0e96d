"""
Admin API endpoints for CommentGuard management.

Includes:
- Provider connection test and provider list
- Moderation settings
- Moderation log listing, statistics and deletion
- Preview analysis of a sample comment
- Metrics
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from commentguard.api.dependencies import get_manager_factory, get_settings_service
from commentguard.api.security import verify_api_token
from commentguard.database import get_db
from commentguard.exceptions import CommentGuardError, UnsupportedProviderError
from commentguard.schemas.moderation_schemas import (
    CommentData,
    ConnectionTestRequest,
    ConnectionTestResponse,
    DeleteLogsResponse,
    LogEntry,
    LogPage,
    PreviewRequest,
    PreviewResponse,
    SettingsUpdate,
    SettingsView,
    StatsResponse,
)
from commentguard.services import log_service
from commentguard.services.ai_manager import available_providers
from commentguard.services.comment_processor import ManagerFactory
from commentguard.services.settings_service import GuardConfig, SettingsService
from commentguard.utils.decision import determine_action
from commentguard.utils.logging_config import StructuredLogger, metrics


logger = StructuredLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


def _settings_view(config: GuardConfig) -> SettingsView:
    return SettingsView(
        ai_provider=config.ai_provider,
        ai_provider_token=config.masked_token(),
        has_token=bool(config.ai_provider_token),
        ai_model=config.ai_model,
        auto_process=config.auto_process,
        spam_threshold=config.spam_threshold,
        approval_threshold=config.approval_threshold,
        disable_email_notifications=config.disable_email_notifications,
        log_enabled=config.log_enabled,
        log_retention_days=config.log_retention_days,
        custom_system_message=config.custom_system_message,
        connection_tested=config.connection_tested,
        is_configured=config.is_configured(),
    )


# ============== PROVIDERS ==============


@router.get("/providers")
async def list_providers():
    """Supported AI providers with display names."""
    return available_providers()


@router.post("/test-connection", response_model=ConnectionTestResponse)
def test_connection(
    request: ConnectionTestRequest,
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
    manager_factory: ManagerFactory = Depends(get_manager_factory),
):
    """Send a trivial prompt to a provider with the given credentials."""
    provider = request.ai_provider.strip()
    token = request.ai_provider_token.strip()

    if not provider or not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select a provider and provide the token",
        )

    try:
        manager = manager_factory(provider, token, model=request.ai_model or None)
        connected = manager.test_connection()
    except CommentGuardError as e:
        logger.warning("Connection test failed", provider=provider, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Connection error: {e}",
        )

    if not connected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Connection test failed",
        )

    config = settings_service.load(db)
    if config.ai_provider == provider and config.ai_provider_token == token:
        settings_service.mark_connection_tested(db)

    return ConnectionTestResponse(
        message="Connection successful with AI provider",
        provider=provider,
    )


# ============== SETTINGS ==============


@router.get("/settings", response_model=SettingsView)
def get_settings(
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Current settings; the provider token is masked."""
    return _settings_view(settings_service.load(db))


@router.put("/settings", response_model=SettingsView)
def update_settings(
    update: SettingsUpdate,
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Partially update settings. An empty token keeps the stored one."""
    try:
        config = settings_service.update(db, update.model_dump(exclude_none=True))
    except UnsupportedProviderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return _settings_view(config)


# ============== LOGS ==============


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
):
    """Moderation statistics for the last `days` days."""
    return StatsResponse(**log_service.get_statistics(db, days=days))


@router.get("/logs", response_model=LogPage)
def list_logs(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=200),
    orderby: str = "created_at",
    order: str = "DESC",
    action: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    result = log_service.get_logs(
        db,
        page=page,
        per_page=per_page,
        orderby=orderby,
        order=order,
        action=action,
        date_from=date_from,
        date_to=date_to,
    )
    result["logs"] = [LogEntry.model_validate(entry) for entry in result["logs"]]
    return LogPage(**result)


@router.delete("/logs", response_model=DeleteLogsResponse)
def delete_logs(
    days: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Delete logs older than `days` days (0 = all logs)."""
    deleted = log_service.clear_logs(db, older_than_days=days)
    noun = "log" if deleted == 1 else "logs"
    return DeleteLogsResponse(message=f"{deleted} {noun} deleted", deleted=deleted)


# ============== PREVIEW ==============


@router.post("/preview", response_model=PreviewResponse)
def preview_analysis(
    request: PreviewRequest,
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
    manager_factory: ManagerFactory = Depends(get_manager_factory),
):
    """
    Run a sample comment through the configured provider.
    Nothing is logged and no comment status changes.
    """
    if not request.comment_content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment content is required",
        )

    config = settings_service.load(db)
    if not config.is_configured():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="AI provider is not configured",
        )

    comment = CommentData(
        comment_author=request.comment_author,
        comment_author_email=request.comment_email,
        comment_author_url="",
        comment_content=request.comment_content,
        comment_author_ip="127.0.0.1",
        comment_agent="Preview Test",
        comment_date=datetime.utcnow().isoformat(),
        comment_post_id=1,
    )

    try:
        manager = manager_factory(
            config.ai_provider,
            config.ai_provider_token,
            model=config.ai_model or None,
        )
        result = manager.analyze_comment(comment, config.system_prompt())
    except CommentGuardError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Analysis error: {e}",
        )

    action = determine_action(
        result.status,
        result.confidence,
        config.threshold("spam"),
        config.threshold("approval"),
    )

    return PreviewResponse(
        status=result.status,
        confidence=result.confidence,
        reasoning=result.reasoning,
        action=action.value,
        prompt_used=result.prompt_used,
        system_message=result.system_message,
        raw_response=result.raw_response,
    )


# ============== METRICS ==============


@router.get("/metrics")
async def get_metrics():
    """Get current application metrics."""
    return metrics.get_stats()


@router.post("/metrics/reset")
async def reset_metrics():
    """Reset all metrics."""
    metrics.reset()
    return {"message": "Metrics reset"}
