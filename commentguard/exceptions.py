class CommentGuardError(Exception):
    """Base error for moderation failures."""


class ProviderError(CommentGuardError):
    """An AI provider call failed (transport, HTTP status or response shape)."""


class UnsupportedProviderError(CommentGuardError):
    """Unknown AI provider name."""


class AnalysisError(CommentGuardError):
    """The AI answer could not be turned into a verdict."""
