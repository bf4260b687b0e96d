"""
Moderation decision utilities.
Maps an AI verdict (label + confidence) to a moderation action using the
configured spam and approval thresholds, and the action to the status the
blog stores for the comment.
"""

import enum
from typing import Optional


class AnalysisLabel(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    SPAM = "spam"


class ModerationAction(str, enum.Enum):
    APPROVE = "approve"
    HOLD = "hold"
    REJECT = "reject"
    SPAM = "spam"


class CommentStatus(str, enum.Enum):
    """Values of the blog's comment_approved column."""
    APPROVED = "1"
    PENDING = "0"
    SPAM = "spam"
    TRASH = "trash"


DEFAULT_SPAM_THRESHOLD = 0.7
DEFAULT_APPROVAL_THRESHOLD = 0.3

_STATUS_BY_ACTION = {
    ModerationAction.APPROVE: CommentStatus.APPROVED,
    ModerationAction.HOLD: CommentStatus.PENDING,
    ModerationAction.REJECT: CommentStatus.TRASH,
    ModerationAction.SPAM: CommentStatus.SPAM,
}


def determine_action(
    label: Optional[str],
    confidence: float,
    spam_threshold: float = DEFAULT_SPAM_THRESHOLD,
    approval_threshold: float = DEFAULT_APPROVAL_THRESHOLD,
) -> ModerationAction:
    """
    Decide what to do with a comment.

    spam and rejected verdicts escalate only when confidence reaches the
    spam threshold, approvals only when it reaches the approval threshold.
    Both boundaries are inclusive. Anything else is held for manual review.

    Args:
        label: AI label ("approved", "rejected", "spam" or anything else)
        confidence: AI confidence (0-1)
        spam_threshold: Confidence needed to spam/reject
        approval_threshold: Confidence needed to approve

    Returns:
        ModerationAction
    """
    if label == AnalysisLabel.SPAM.value:
        return ModerationAction.SPAM if confidence >= spam_threshold else ModerationAction.HOLD
    elif label == AnalysisLabel.REJECTED.value:
        return ModerationAction.REJECT if confidence >= spam_threshold else ModerationAction.HOLD
    elif label == AnalysisLabel.APPROVED.value:
        return ModerationAction.APPROVE if confidence >= approval_threshold else ModerationAction.HOLD
    else:
        return ModerationAction.HOLD


def action_to_status(action: ModerationAction) -> CommentStatus:
    """Map a moderation action to the stored comment status (unknown = pending)."""
    return _STATUS_BY_ACTION.get(action, CommentStatus.PENDING)
