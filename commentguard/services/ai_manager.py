import logging
from typing import Dict, Optional, Type

from commentguard.exceptions import AnalysisError, ProviderError, UnsupportedProviderError
from commentguard.schemas.moderation_schemas import AnalysisResult, CommentData
from commentguard.services.providers import (
    AnthropicProvider,
    BaseProvider,
    OpenAIProvider,
    OpenRouterProvider,
)
from commentguard.utils.analysis_parser import parse_analysis

logger = logging.getLogger(__name__)


PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "openrouter": OpenRouterProvider,
}

PROVIDER_LABELS = {
    "openai": "OpenAI (GPT-4, GPT-3.5)",
    "anthropic": "Anthropic (Claude)",
    "openrouter": "OpenRouter (Multiple models)",
}


def available_providers() -> Dict[str, str]:
    return dict(PROVIDER_LABELS)


def create_provider(name: str, token: str, model: Optional[str] = None, **kwargs) -> BaseProvider:
    """Instantiate a provider client by its registry name."""
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise UnsupportedProviderError(f"Unsupported AI provider: {name}")
    return provider_cls(token, model=model or None, **kwargs)


def _field(comment: CommentData, name: str, placeholder: str) -> str:
    """The submitted value, or the placeholder when the blog did not send the field."""
    if name not in comment.model_fields_set:
        return placeholder
    return getattr(comment, name)


def build_prompt(comment: CommentData) -> str:
    """
    Moderation instructions followed by the comment being judged.
    Fields sent as empty strings are shown empty; only missing fields get
    a placeholder.
    """
    return (
        "Analyze the following comment and determine if it should be approved, rejected, or marked as spam.\n"
        "Respond ONLY with a valid JSON with the following structure:\n"
        '{"analysis": "approved|rejected|spam", "confidence": 0.0-1.0, "reason": "brief explanation"}\n\n'
        "Criteria:\n"
        "- SPAM: Promotional comments, suspicious links, nonsensical text, repetitive content\n"
        "- REJECTED: Offensive comments, inappropriate content, off-topic\n"
        "- APPROVED: Constructive comments, relevant, appropriate\n\n"
        "Comment to analyze:\n"
        f"Author: {_field(comment, 'comment_author', 'Unknown')}\n"
        f"Email: {_field(comment, 'comment_author_email', 'No email provided')}\n"
        f"URL: {_field(comment, 'comment_author_url', 'No URL provided')}\n"
        f"Content: {comment.comment_content}"
    )


class AIManager:
    """
    Runs a comment through the configured AI provider and returns a
    structured verdict.
    """

    def __init__(self, provider_name: str, token: str, model: Optional[str] = None, **provider_kwargs):
        self.provider = create_provider(provider_name, token, model=model, **provider_kwargs)

    def analyze_comment(self, comment: CommentData, system_message: str = "") -> AnalysisResult:
        prompt = build_prompt(comment)

        try:
            result = self.provider.request(prompt, system_message)
        except ProviderError as e:
            raise AnalysisError(f"AI analysis failed: {e}") from e

        analysis = parse_analysis(result.response)
        if analysis is None:
            logger.warning(f"Unparseable answer from {result.provider}: {result.response[:200]!r}")
            raise AnalysisError("AI analysis failed: Invalid analysis format")

        return AnalysisResult(
            status=analysis.status,
            confidence=analysis.confidence,
            reasoning=analysis.reasoning,
            provider=result.provider,
            processing_time=result.processing_time,
            prompt_used=prompt,
            system_message=system_message,
            raw_response=result.raw_response,
        )

    def test_connection(self) -> bool:
        return self.provider.test_connection()
