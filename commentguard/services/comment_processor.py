"""
Comment gate: decides the status of a newly submitted comment.

provider call -> parse -> decision -> log -> status

The gate is fail-safe: any error falls through to the status the blog
proposed, so a broken provider never blocks or loses comments.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commentguard.schemas.moderation_schemas import AnalysisResult, CommentData
from commentguard.services import log_service
from commentguard.services.ai_manager import AIManager
from commentguard.services.cache_service import ProcessedComments, processed_comments
from commentguard.services.settings_service import GuardConfig, SettingsService, guard_settings
from commentguard.utils.decision import ModerationAction, action_to_status, determine_action
from commentguard.utils.logging_config import StructuredLogger, track_moderation

logger = StructuredLogger(__name__)

ManagerFactory = Callable[..., AIManager]


@dataclass
class GateResult:
    status: str
    action: Optional[ModerationAction] = None
    analysis: Optional[AnalysisResult] = None


class CommentProcessor:
    def __init__(
        self,
        db: Session,
        settings_service: SettingsService = guard_settings,
        markers: ProcessedComments = processed_comments,
        manager_factory: ManagerFactory = AIManager,
    ):
        self.db = db
        self.settings_service = settings_service
        self.markers = markers
        self.manager_factory = manager_factory

    def _rollback(self):
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            logger.error("Rollback failed", error=str(e))

    def _analyze(self, comment: CommentData, config: GuardConfig) -> AnalysisResult:
        manager = self.manager_factory(
            config.ai_provider,
            config.ai_provider_token,
            model=config.ai_model or None,
        )
        return manager.analyze_comment(comment, config.system_prompt())

    @track_moderation
    def review_comment(
        self,
        proposed_status: str,
        comment: CommentData,
        is_moderator: bool = False,
    ) -> GateResult:
        config = self.settings_service.load(self.db)

        if not config.is_enabled("auto_process"):
            return GateResult(status=proposed_status)

        if not config.is_configured():
            return GateResult(status=proposed_status)

        # Moderators' own comments are never second-guessed
        if is_moderator:
            return GateResult(status=proposed_status)

        try:
            analysis = self._analyze(comment, config)

            action = determine_action(
                analysis.status,
                analysis.confidence,
                config.threshold("spam"),
                config.threshold("approval"),
            )

            self.markers.mark(
                comment.comment_content,
                comment.comment_author,
                comment.comment_author_email,
            )

            if config.is_enabled("logging"):
                log_service.log_analysis(self.db, comment, analysis, action.value)

            logger.info(
                "Comment moderated",
                provider=analysis.provider,
                label=analysis.status,
                confidence=analysis.confidence,
                action=action.value,
            )
            return GateResult(
                status=action_to_status(action).value,
                action=action,
                analysis=analysis,
            )

        except Exception as e:
            # Fail-safe: keep whatever the blog would have done
            self._rollback()
            logger.warning("Moderation skipped", error=str(e), error_type=type(e).__name__)
            return GateResult(status=proposed_status)

    def process_comment(
        self,
        proposed_status: str,
        comment: CommentData,
        is_moderator: bool = False,
    ) -> str:
        """Revised status for the comment (proposed_status when untouched)."""
        return self.review_comment(proposed_status, comment, is_moderator).status

    def should_notify(self, notify: bool, comment: CommentData) -> bool:
        """
        Whether the blog should still send its new-comment e-mail.
        Suppressed for comments the AI just handled when the setting is on.
        """
        if not notify:
            return notify

        config = self.settings_service.load(self.db)
        if not config.disable_email_notifications:
            return notify

        if self.markers.was_processed(
            comment.comment_content,
            comment.comment_author,
            comment.comment_author_email,
        ):
            return False

        return notify
