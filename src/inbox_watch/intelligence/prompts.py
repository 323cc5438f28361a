"""Prompt templates for LLM-driven classification."""

from __future__ import annotations

SYSTEM_PROMPT = (
    "You are an expert email analyst specializing in distinguishing between "
    "automated/system-generated emails and human-written emails. Analyze emails "
    "carefully and provide detailed, accurate classifications."
)

CONNECTION_TEST_PROMPT = 'Say "Hello"'


def build_classification_prompt(sender: str, subject: str, body: str) -> str:
    """Compose a JSON-only classification prompt embedding the email verbatim."""
    # Built by concatenation so the body is never re-indented or re-formatted.
    return (
        "Analyze the following email and determine if it is SYSTEM-GENERATED "
        "(automated, from a bot/service) or HUMAN-GENERATED (written by a real "
        "person).\n"
        "\n"
        "Email Details:\n"
        f"From: {sender}\n"
        f"Subject: {subject}\n"
        "\n"
        "Body:\n"
        f"{body}\n"
        "\n"
        "Please provide:\n"
        "1. Classification (system-generated or human-generated)\n"
        "2. Confidence level (0-100)\n"
        "3. Detailed reasoning\n"
        "4. Specific indicators that led to this classification\n"
        "\n"
        "Respond in JSON format:\n"
        "{\n"
        '  "classification": "system-generated" or "human-generated",\n'
        '  "confidence": number (0-100),\n'
        '  "reasoning": "detailed explanation",\n'
        '  "indicators": {\n'
        '    "systemIndicators": ["indicator1", "indicator2", ...],\n'
        '    "humanIndicators": ["indicator1", "indicator2", ...]\n'
        "  }\n"
        "}"
    )


__all__ = ["CONNECTION_TEST_PROMPT", "SYSTEM_PROMPT", "build_classification_prompt"]
