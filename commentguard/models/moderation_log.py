"""
Moderation log model: one row per comment the AI moderated.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Float, DateTime, Text
from commentguard.database import Base


class ModerationLog(Base):
    """Append-only record of an AI moderation decision."""
    __tablename__ = "moderation_log"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(BigInteger, nullable=False, default=0, index=True)  # 0 = not yet stored by the blog

    # Comment snapshot
    comment_content = Column(Text, default="")
    comment_author = Column(String(255), default="")
    comment_author_email = Column(String(100), default="")
    comment_author_url = Column(String(200), default="")
    comment_author_ip = Column(String(45), default="")
    comment_hash = Column(String(32), index=True)  # md5(content + author)

    # AI verdict
    ai_provider = Column(String(50), default="")
    ai_response = Column(Text, default="")  # {"analysis": ..., "confidence": ..., "reason": ...}
    action = Column(String(20), nullable=False, index=True)  # approve | hold | reject | spam
    confidence = Column(Float, default=0.0)
    processing_time = Column(Float, default=0.0)  # seconds
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
