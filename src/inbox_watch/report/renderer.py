"""Console report formatting for processed emails.

Every function here is pure: the same inputs always produce the same text, so
the scheduler decides when and where the text is written.
"""

from __future__ import annotations

from collections.abc import Iterable

from inbox_watch.core.models import Classification, ClassificationLabel, ParsedMessage

LINE_WIDTH = 80
HEAVY_RULE = "=" * LINE_WIDTH
LIGHT_RULE = "-" * LINE_WIDTH
_BANNER_WIDTH = 40

_BANNER_TEXT = {
    ClassificationLabel.SYSTEM_GENERATED: "SYSTEM-GENERATED EMAIL",
    ClassificationLabel.HUMAN_GENERATED: "HUMAN-GENERATED EMAIL",
}


def confidence_band(confidence: int) -> str:
    """Map a 0-100 confidence score to its display band."""
    if confidence >= 80:
        return "High"
    if confidence >= 60:
        return "Medium"
    return "Low"


def render_message(message: ParsedMessage, index: int) -> str:
    """Render the header and body block shown before classification."""
    lines = [
        "",
        HEAVY_RULE,
        f"EMAIL #{index}",
        HEAVY_RULE,
        f"From: {message.sender}",
        f"To: {message.recipient}",
        f"Subject: {message.subject}",
        f"Date: {message.date}",
        LIGHT_RULE,
        "BODY:",
        LIGHT_RULE,
        message.body,
        HEAVY_RULE,
    ]
    return "\n".join(lines)


def _banner(text: str) -> list[str]:
    inner = _BANNER_WIDTH - 2
    return [
        "╔" + "═" * inner + "╗",
        "║" + text.center(inner) + "║",
        "╚" + "═" * inner + "╝",
    ]


def _bullets(title: str, items: Iterable[str]) -> list[str]:
    entries = [f"  • {item}" for item in items]
    return [f"{title}:", *(entries or ["  (none)"])]


def render_classification(classification: Classification) -> str:
    """Render the verdict block for a successful classification."""
    band = confidence_band(classification.confidence)
    lines = [
        "AI CLASSIFICATION",
        LIGHT_RULE,
        *_banner(_BANNER_TEXT[classification.label]),
        f"Confidence: {classification.confidence}% ({band})",
        "",
        "Reasoning:",
        classification.reasoning,
        "",
        *_bullets("System Indicators", classification.system_indicators),
        *_bullets("Human Indicators", classification.human_indicators),
        HEAVY_RULE,
        "",
    ]
    return "\n".join(lines)


def render_classification_error(error: BaseException | str) -> str:
    """Render the block shown in place of a verdict when classification fails."""
    lines = [
        "AI CLASSIFICATION",
        LIGHT_RULE,
        f"Classification failed: {error}",
        HEAVY_RULE,
        "",
    ]
    return "\n".join(lines)


def render_report(
    message: ParsedMessage,
    outcome: Classification | BaseException,
    index: int = 1,
) -> str:
    """Render the full report for one message and its classification outcome."""
    if isinstance(outcome, Classification):
        verdict = render_classification(outcome)
    else:
        verdict = render_classification_error(outcome)
    return f"{render_message(message, index)}\n{verdict}"


__all__ = [
    "HEAVY_RULE",
    "LIGHT_RULE",
    "LINE_WIDTH",
    "confidence_band",
    "render_classification",
    "render_classification_error",
    "render_message",
    "render_report",
]
