"""
Runtime moderation settings.

Stored as a single row, cached in-process for an hour, with the provider
token encrypted at rest.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from commentguard.config import settings
from commentguard.exceptions import UnsupportedProviderError
from commentguard.models.guard_settings import GuardSettings
from commentguard.services.ai_manager import PROVIDERS
from commentguard.services.cache_service import ExpiringCache
from commentguard.utils.crypto import TokenCipher, mask_secret
from commentguard.utils.decision import DEFAULT_APPROVAL_THRESHOLD, DEFAULT_SPAM_THRESHOLD

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1
CACHE_KEY = "guard_settings"

DEFAULT_SYSTEM_MESSAGE = (
    "You are an expert comment moderator. Analyze the comment content and determine "
    "if it should be approved, marked as spam, or rejected."
)

BOOLEAN_FIELDS = ("auto_process", "disable_email_notifications", "log_enabled")
THRESHOLD_FIELDS = ("spam_threshold", "approval_threshold")
MAX_RETENTION_DAYS = 365


@dataclass
class GuardConfig:
    """Decrypted snapshot of the settings row."""
    ai_provider: str = ""
    ai_provider_token: str = ""
    ai_model: str = ""
    auto_process: bool = True
    spam_threshold: float = DEFAULT_SPAM_THRESHOLD
    approval_threshold: float = DEFAULT_APPROVAL_THRESHOLD
    disable_email_notifications: bool = False
    log_enabled: bool = False
    log_retention_days: int = 30
    custom_system_message: str = ""
    connection_tested: bool = False

    def is_enabled(self, feature: str) -> bool:
        if feature == "auto_process":
            return bool(self.auto_process)
        elif feature == "logging":
            return bool(self.log_enabled)
        return False

    def is_configured(self) -> bool:
        return bool(self.ai_provider) and bool(self.ai_provider_token)

    def threshold(self, kind: str) -> float:
        if kind == "spam":
            return float(self.spam_threshold)
        elif kind == "approval":
            return float(self.approval_threshold)
        return 0.5

    def system_prompt(self) -> str:
        return self.custom_system_message or DEFAULT_SYSTEM_MESSAGE

    def masked_token(self) -> str:
        return mask_secret(self.ai_provider_token)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def sanitize_settings(values: Dict[str, Any], current: GuardConfig) -> Dict[str, Any]:
    """
    Clean an incoming settings update.

    Only keys present in `values` are returned. An empty token never
    overwrites the stored one; thresholds are clamped to [0, 1] and the
    retention period to [0, 365] days.
    """
    clean: Dict[str, Any] = {}

    if values.get("ai_provider") is not None:
        provider = str(values["ai_provider"]).strip().lower()
        if provider and provider not in PROVIDERS:
            raise UnsupportedProviderError(f"Unsupported AI provider: {provider}")
        clean["ai_provider"] = provider

    token = values.get("ai_provider_token")
    if token:
        clean["ai_provider_token"] = str(token).strip()

    if values.get("ai_model") is not None:
        clean["ai_model"] = str(values["ai_model"]).strip()

    for field in BOOLEAN_FIELDS:
        if values.get(field) is not None:
            clean[field] = _to_bool(values[field])

    for field in THRESHOLD_FIELDS:
        if values.get(field) is not None:
            clean[field] = _clamp(float(values[field]), 0.0, 1.0)

    if values.get("log_retention_days") is not None:
        clean["log_retention_days"] = int(_clamp(int(values["log_retention_days"]), 0, MAX_RETENTION_DAYS))

    if values.get("custom_system_message") is not None:
        clean["custom_system_message"] = str(values["custom_system_message"]).strip()

    # A new provider or token has not been tested yet
    provider_changed = "ai_provider" in clean and clean["ai_provider"] != current.ai_provider
    token_changed = "ai_provider_token" in clean
    if provider_changed or token_changed:
        clean["connection_tested"] = False

    return clean


class SettingsService:
    def __init__(self, cipher: Optional[TokenCipher] = None, ttl_seconds: Optional[int] = None):
        self.cipher = cipher or TokenCipher()
        self._cache = ExpiringCache(
            max_size=1,
            ttl_seconds=ttl_seconds if ttl_seconds is not None else settings.settings_cache_ttl,
        )

    def _get_row(self, db: Session) -> GuardSettings:
        row = db.get(GuardSettings, SETTINGS_ROW_ID)
        if row is None:
            row = GuardSettings(
                id=SETTINGS_ROW_ID,
                ai_provider=settings.default_ai_provider,
                ai_provider_token=self.cipher.encrypt(settings.default_ai_provider_token),
                ai_model="",
                auto_process=True,
                spam_threshold=DEFAULT_SPAM_THRESHOLD,
                approval_threshold=DEFAULT_APPROVAL_THRESHOLD,
                disable_email_notifications=False,
                log_enabled=False,
                log_retention_days=30,
                custom_system_message="",
                connection_tested=False,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.info("Created default moderation settings")
        return row

    def _snapshot(self, row: GuardSettings) -> GuardConfig:
        return GuardConfig(
            ai_provider=row.ai_provider or "",
            ai_provider_token=self.cipher.decrypt(row.ai_provider_token or ""),
            ai_model=row.ai_model or "",
            auto_process=bool(row.auto_process),
            spam_threshold=float(row.spam_threshold),
            approval_threshold=float(row.approval_threshold),
            disable_email_notifications=bool(row.disable_email_notifications),
            log_enabled=bool(row.log_enabled),
            log_retention_days=int(row.log_retention_days),
            custom_system_message=row.custom_system_message or "",
            connection_tested=bool(row.connection_tested),
        )

    def load(self, db: Session) -> GuardConfig:
        cached = self._cache.get(CACHE_KEY)
        if cached is not None:
            return cached

        config = self._snapshot(self._get_row(db))
        self._cache.set(CACHE_KEY, config)
        return config

    def update(self, db: Session, values: Dict[str, Any]) -> GuardConfig:
        current = self.load(db)
        clean = sanitize_settings(values, current)

        row = self._get_row(db)
        for key, value in clean.items():
            if key == "ai_provider_token":
                value = self.cipher.encrypt(value)
            setattr(row, key, value)
        db.commit()
        db.refresh(row)

        config = self._snapshot(row)
        self._cache.set(CACHE_KEY, config)
        logger.info(f"Settings updated: {sorted(clean)}")
        return config

    def mark_connection_tested(self, db: Session, tested: bool = True) -> GuardConfig:
        row = self._get_row(db)
        row.connection_tested = tested
        db.commit()
        self.clear_cache()
        return self.load(db)

    def clear_cache(self):
        self._cache.clear()


# Global settings service (uses config values)
guard_settings = SettingsService()
