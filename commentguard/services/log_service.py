"""
Moderation log: persistence, listing, statistics and retention.
"""

import hashlib
import json
import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func

from commentguard.models.moderation_log import ModerationLog
from commentguard.schemas.moderation_schemas import AnalysisResult, CommentData

logger = logging.getLogger(__name__)

ALLOWED_ORDER_BY = {"id", "created_at", "action", "confidence", "processing_time"}
ALLOWED_ORDER = {"ASC", "DESC"}


def comment_hash(content: str, author: str) -> str:
    """Identity of a comment in the log (duplicate submissions share it)."""
    return hashlib.md5(f"{content or ''}{author or ''}".encode()).hexdigest()


def log_exists(db: Session, hash_value: str) -> bool:
    return (
        db.query(ModerationLog.id)
        .filter(ModerationLog.comment_hash == hash_value)
        .first()
        is not None
    )


def insert_log(
    db: Session,
    action: str,
    comment_id: int = 0,
    comment_content: str = "",
    comment_author: str = "",
    comment_author_email: str = "",
    comment_author_url: str = "",
    comment_author_ip: str = "",
    comment_hash_value: str = "",
    ai_provider: str = "",
    ai_response: str = "",
    confidence: float = 0.0,
    processing_time: float = 0.0,
    error_message: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> ModerationLog:
    """
    Insert a log row. The comment hash is derived from content and author
    when not supplied.
    """
    if not comment_hash_value and comment_content and comment_author:
        comment_hash_value = comment_hash(comment_content, comment_author)

    entry = ModerationLog(
        comment_id=comment_id,
        comment_content=comment_content,
        comment_author=comment_author,
        comment_author_email=comment_author_email,
        comment_author_url=comment_author_url,
        comment_author_ip=comment_author_ip,
        comment_hash=comment_hash_value,
        ai_provider=ai_provider,
        ai_response=ai_response,
        action=action,
        confidence=confidence,
        processing_time=processing_time,
        error_message=error_message,
        created_at=created_at or datetime.utcnow(),
    )

    db.add(entry)
    db.commit()
    db.refresh(entry)

    return entry


def log_analysis(
    db: Session,
    comment: CommentData,
    analysis: AnalysisResult,
    action: str,
) -> Optional[ModerationLog]:
    """Record a moderation decision once per comment hash."""
    hash_value = comment_hash(comment.comment_content, comment.comment_author)
    if log_exists(db, hash_value):
        logger.debug(f"Comment {hash_value} already logged")
        return None

    return insert_log(
        db,
        action=action,
        comment_content=comment.comment_content,
        comment_author=comment.comment_author,
        comment_author_email=comment.comment_author_email,
        comment_author_url=comment.comment_author_url,
        comment_author_ip=comment.comment_author_ip,
        comment_hash_value=hash_value,
        ai_provider=analysis.provider,
        ai_response=json.dumps({
            "analysis": analysis.status,
            "confidence": analysis.confidence,
            "reason": analysis.reasoning,
        }),
        confidence=analysis.confidence,
        processing_time=analysis.processing_time,
    )


def get_logs(
    db: Session,
    page: int = 1,
    per_page: int = 10,
    orderby: str = "created_at",
    order: str = "DESC",
    action: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Paginated log listing, newest first by default.
    Unknown orderby/order values fall back to created_at DESC.
    """
    page = max(1, page)
    per_page = max(1, per_page)

    query = db.query(ModerationLog)
    if action:
        query = query.filter(ModerationLog.action == action)
    if date_from:
        query = query.filter(ModerationLog.created_at >= date_from)
    if date_to:
        query = query.filter(ModerationLog.created_at <= date_to)

    total = query.count()

    column = getattr(ModerationLog, orderby if orderby in ALLOWED_ORDER_BY else "created_at")
    direction = order.upper() if order and order.upper() in ALLOWED_ORDER else "DESC"
    ordering = column.asc() if direction == "ASC" else column.desc()

    logs: List[ModerationLog] = (
        query.order_by(ordering, ModerationLog.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "logs": logs,
        "total": total,
        "pages": math.ceil(total / per_page),
        "page": page,
        "per_page": per_page,
    }


def get_statistics(db: Session, days: int = 30) -> Dict[str, Any]:
    """Per-action counts and averages over the last `days` days."""
    since = datetime.utcnow() - timedelta(days=days)

    rows = (
        db.query(
            ModerationLog.action,
            func.count(ModerationLog.id).label("count"),
            func.avg(ModerationLog.confidence).label("avg_confidence"),
            func.avg(ModerationLog.processing_time).label("avg_processing_time"),
        )
        .filter(ModerationLog.created_at >= since)
        .group_by(ModerationLog.action)
        .all()
    )

    result: Dict[str, Any] = {
        "period_days": days,
        "total": 0,
        "by_action": {},
        "avg_confidence": 0.0,
        "avg_processing_time": 0.0,
    }

    for row in rows:
        result["by_action"][row.action] = {
            "count": int(row.count),
            "avg_confidence": float(row.avg_confidence or 0.0),
            "avg_processing_time": float(row.avg_processing_time or 0.0),
        }
        result["total"] += int(row.count)

    if result["total"] > 0:
        overall = (
            db.query(
                func.avg(ModerationLog.confidence).label("avg_confidence"),
                func.avg(ModerationLog.processing_time).label("avg_processing_time"),
            )
            .filter(ModerationLog.created_at >= since)
            .one()
        )
        result["avg_confidence"] = float(overall.avg_confidence or 0.0)
        result["avg_processing_time"] = float(overall.avg_processing_time or 0.0)

    return result


def clear_logs(db: Session, older_than_days: int = 0) -> int:
    """
    Delete logs older than `older_than_days` days; 0 deletes everything.

    Returns:
        Number of deleted rows
    """
    query = db.query(ModerationLog)
    if older_than_days > 0:
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)
        query = query.filter(ModerationLog.created_at < cutoff)

    deleted = query.delete(synchronize_session=False)
    db.commit()

    if deleted:
        logger.info(f"Deleted {deleted} moderation log entries (older_than_days={older_than_days})")
    return deleted


def clean_old_logs(db: Session, retention_days: int) -> int:
    """Apply the retention policy. A retention of 0 or less keeps everything."""
    if retention_days <= 0:
        return 0
    return clear_logs(db, retention_days)
