from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


class CommentData(BaseModel):
    """
    A submitted comment. Field names follow the blog's comment array
    (comment_author, comment_content, ...), so it can be posted as-is.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    comment_author: str = ""
    comment_author_email: str = ""
    comment_author_url: str = ""
    comment_content: str
    comment_author_ip: str = Field("", alias="comment_author_IP")
    comment_post_id: Optional[int] = Field(None, alias="comment_post_ID")
    comment_agent: Optional[str] = None
    comment_date: Optional[str] = None


class AnalysisResult(BaseModel):
    status: str  # approved | rejected | spam (anything else is held)
    confidence: float  # 0.0-1.0
    reasoning: str
    provider: str
    processing_time: float  # seconds
    prompt_used: Optional[str] = None
    system_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


# ============== COMMENT GATE ==============


class ModerateRequest(BaseModel):
    proposed_status: str = "0"  # what the blog would store without moderation
    comment: CommentData
    is_moderator: bool = False  # submitted by a logged-in moderator


class ModerateResponse(BaseModel):
    status: str  # "1" | "0" | "spam" | "trash" (or proposed_status untouched)
    action: Optional[str] = None  # approve | hold | reject | spam
    analysis: Optional[AnalysisResult] = None


class NotifyRequest(BaseModel):
    notify: bool = True
    comment: CommentData


class NotifyResponse(BaseModel):
    notify: bool


# ============== ADMIN ==============


class ConnectionTestRequest(BaseModel):
    ai_provider: str = ""
    ai_provider_token: str = ""
    ai_model: Optional[str] = None


class ConnectionTestResponse(BaseModel):
    message: str
    provider: str


class ActionStats(BaseModel):
    count: int
    avg_confidence: float
    avg_processing_time: float


class StatsResponse(BaseModel):
    period_days: int
    total: int
    by_action: Dict[str, ActionStats]
    avg_confidence: float
    avg_processing_time: float


class LogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    comment_id: int
    comment_content: Optional[str] = None
    comment_author: Optional[str] = None
    comment_author_email: Optional[str] = None
    comment_author_url: Optional[str] = None
    comment_author_ip: Optional[str] = None
    comment_hash: Optional[str] = None
    ai_provider: Optional[str] = None
    ai_response: Optional[str] = None
    action: str
    confidence: Optional[float] = None
    processing_time: Optional[float] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


class LogPage(BaseModel):
    logs: List[LogEntry]
    total: int
    pages: int
    page: int
    per_page: int


class DeleteLogsResponse(BaseModel):
    message: str
    deleted: int


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left untouched."""
    ai_provider: Optional[str] = None
    ai_provider_token: Optional[str] = None  # empty keeps the stored token
    ai_model: Optional[str] = None
    auto_process: Optional[bool] = None
    spam_threshold: Optional[float] = None
    approval_threshold: Optional[float] = None
    disable_email_notifications: Optional[bool] = None
    log_enabled: Optional[bool] = None
    log_retention_days: Optional[int] = None
    custom_system_message: Optional[str] = None


class SettingsView(BaseModel):
    ai_provider: str
    ai_provider_token: str  # masked
    has_token: bool
    ai_model: str
    auto_process: bool
    spam_threshold: float
    approval_threshold: float
    disable_email_notifications: bool
    log_enabled: bool
    log_retention_days: int
    custom_system_message: str
    connection_tested: bool
    is_configured: bool


class PreviewRequest(BaseModel):
    comment_author: str = ""
    comment_email: str = ""
    comment_content: str = ""


class PreviewResponse(BaseModel):
    status: str
    confidence: float
    reasoning: str
    action: Literal["approve", "hold", "reject", "spam"]
    prompt_used: Optional[str] = None
    system_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None
