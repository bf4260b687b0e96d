from sqlalchemy import Column, Integer, String, Float, Boolean, Text, DateTime, func
from commentguard.database import Base


class GuardSettings(Base):
    __tablename__ = "guard_settings"

    id = Column(Integer, primary_key=True)  # single row, id = 1

    ai_provider = Column(String(50), default="")           # openai | anthropic | openrouter
    ai_provider_token = Column(Text, default="")           # Fernet ciphertext
    ai_model = Column(String(100), default="")             # empty = provider default

    auto_process = Column(Boolean, default=True)
    spam_threshold = Column(Float, default=0.7)
    approval_threshold = Column(Float, default=0.3)
    disable_email_notifications = Column(Boolean, default=False)

    log_enabled = Column(Boolean, default=False)
    log_retention_days = Column(Integer, default=30)       # 0 = keep forever

    custom_system_message = Column(Text, default="")
    connection_tested = Column(Boolean, default=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
