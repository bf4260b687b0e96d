from fastapi import Depends
from sqlalchemy.orm import Session

from commentguard.database import get_db
from commentguard.services.ai_manager import AIManager
from commentguard.services.cache_service import ProcessedComments, processed_comments
from commentguard.services.comment_processor import CommentProcessor, ManagerFactory
from commentguard.services.settings_service import SettingsService, guard_settings


def get_settings_service() -> SettingsService:
    return guard_settings


def get_markers() -> ProcessedComments:
    return processed_comments


def get_manager_factory() -> ManagerFactory:
    return AIManager


def get_processor(
    db: Session = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
    markers: ProcessedComments = Depends(get_markers),
    manager_factory: ManagerFactory = Depends(get_manager_factory),
) -> CommentProcessor:
    return CommentProcessor(
        db,
        settings_service=settings_service,
        markers=markers,
        manager_factory=manager_factory,
    )
