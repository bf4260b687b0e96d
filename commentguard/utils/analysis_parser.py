"""
Parse raw AI text into a structured moderation verdict.

Models are asked for `{"analysis": ..., "confidence": ..., "reason": ...}`
but often wrap it in prose or markdown, or ignore the format entirely.
Parsing therefore tries, in order:
1. the first `{...}` block that mentions "analysis"
2. the whole body as JSON
3. a keyword scan of the text (fixed confidence 0.7)
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional


ANALYSIS_BLOCK_RE = re.compile(r'\{[^}]*"analysis"[^}]*\}', re.DOTALL)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_REASON = "AI analysis completed"
KEYWORD_CONFIDENCE = 0.7


@dataclass
class ParsedAnalysis:
    status: str
    confidence: float
    reasoning: str


def _coerce_confidence(value: Any) -> float:
    if value is None:
        return DEFAULT_CONFIDENCE
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        confidence = 0.0
    if confidence != confidence:  # NaN
        confidence = 0.0
    return max(0.0, min(1.0, confidence))


def normalize_analysis(data: Dict[str, Any]) -> ParsedAnalysis:
    """Clamp confidence to [0, 1] and fill in a default reason."""
    reason = data.get("reason")
    return ParsedAnalysis(
        status=str(data["analysis"]).strip().lower(),
        confidence=_coerce_confidence(data.get("confidence")),
        reasoning=str(reason) if reason is not None else DEFAULT_REASON,
    )


def _load_analysis_json(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (ValueError, TypeError):
        return None
    if isinstance(data, dict) and data.get("analysis") is not None:
        return data
    return None


def keyword_analysis(text: str) -> Optional[ParsedAnalysis]:
    """Last-resort verdict from keywords in the AI response."""
    lower = text.lower()

    if "spam" in lower:
        return ParsedAnalysis("spam", KEYWORD_CONFIDENCE, "Detected spam keywords in AI response")
    elif "reject" in lower or "inappropriate" in lower:
        return ParsedAnalysis("rejected", KEYWORD_CONFIDENCE, "Detected rejection keywords in AI response")
    elif "approv" in lower:
        return ParsedAnalysis("approved", KEYWORD_CONFIDENCE, "Detected approval keywords in AI response")

    return None


def parse_analysis(response: str) -> Optional[ParsedAnalysis]:
    """
    Extract a verdict from raw AI output.

    Returns:
        ParsedAnalysis, or None when nothing usable was found
    """
    response = (response or "").strip()

    match = ANALYSIS_BLOCK_RE.search(response)
    if match:
        data = _load_analysis_json(match.group(0))
        if data:
            return normalize_analysis(data)

    data = _load_analysis_json(response)
    if data:
        return normalize_analysis(data)

    return keyword_analysis(response)
