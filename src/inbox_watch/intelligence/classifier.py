"""Email authorship classification backed by an OpenAI-compatible API."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

import httpx

from inbox_watch.core.config import ClassifierSettings
from inbox_watch.core.interfaces import EmailClassifier
from inbox_watch.core.models import Classification, ClassificationLabel

from .prompts import CONNECTION_TEST_PROMPT, SYSTEM_PROMPT, build_classification_prompt

LOGGER = logging.getLogger(__name__)


class ClassifierError(RuntimeError):
    """Base class for classification failures."""


class MissingApiKeyError(ClassifierError):
    """Raised when no API key is configured for the backend."""


class ClassifierUnavailableError(ClassifierError):
    """The backend could not be reached or refused the request."""


class MalformedResponseError(ClassifierError):
    """The backend answered with content that is not a valid verdict."""


class OpenAIClassifier(EmailClassifier):
    """Async client for the chat completions endpoint."""

    def __init__(
        self,
        settings: ClassifierSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the HTTP client; fails when no API key is configured."""
        if not settings.api_key:
            raise MissingApiKeyError("OPENAI_API_KEY is required")
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {settings.api_key}"},
            timeout=settings.timeout_seconds,
            transport=transport,
        )
        LOGGER.info("Classifier initialised with model %s", settings.model)

    @property
    def provider_id(self) -> str:
        """Return a human readable identifier for the configured model."""
        return f"openai:{self._settings.model}"

    async def classify(self, sender: str, subject: str, body: str) -> Classification:
        """Ask the backend whether the email was written by a person."""
        LOGGER.info("Analyzing email from %s with %s", sender, self.provider_id)
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_classification_prompt(sender, subject, body),
                },
            ],
            "temperature": self._settings.temperature,
            "response_format": {"type": "json_object"},
        }
        content = await self._complete(payload)
        if not content:
            raise MalformedResponseError("No response content from classifier")

        classification = parse_classification(content)
        LOGGER.info(
            "Classification: %s (confidence %s%%)",
            classification.label.value,
            classification.confidence,
        )
        return classification

    async def test_connection(self) -> bool:
        """Send a minimal request; ``False`` when nothing usable comes back."""
        LOGGER.info("Testing classifier connection...")
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [{"role": "user", "content": CONNECTION_TEST_PROMPT}],
            "max_tokens": 10,
        }
        try:
            content = await self._complete(payload)
        except ClassifierError as exc:
            LOGGER.error("Classifier connection test failed: %s", exc)
            return False

        if content and content.strip():
            LOGGER.info("Classifier connection test successful")
            return True
        LOGGER.error("Classifier connection test failed - no response")
        return False

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _complete(self, payload: dict[str, Any]) -> str | None:
        try:
            response = await self._client.post("chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ClassifierUnavailableError(
                f"Classifier request failed: {exc}"
            ) from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Classifier returned invalid JSON") from exc
        return _extract_content(data)


def _extract_content(data: Any) -> str | None:
    if not isinstance(data, dict):
        raise MalformedResponseError("Completion payload is not an object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else None


def parse_classification(raw: str) -> Classification:
    """Validate the JSON verdict produced by the model."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError("Classifier output was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("Classifier output must be a JSON object")

    label_raw = payload.get("classification")
    if not isinstance(label_raw, str):
        raise MalformedResponseError("Classifier output missing 'classification'")
    try:
        label = ClassificationLabel(label_raw.strip().lower())
    except ValueError as exc:
        raise MalformedResponseError(
            f"Unknown classification {label_raw!r}"
        ) from exc

    confidence_raw = payload.get("confidence")
    if isinstance(confidence_raw, bool) or not isinstance(confidence_raw, int | float):
        raise MalformedResponseError("Classifier output missing 'confidence'")
    if isinstance(confidence_raw, float) and not math.isfinite(confidence_raw):
        raise MalformedResponseError("Classifier confidence is not a finite number")
    confidence = round(confidence_raw)
    if not 0 <= confidence <= 100:
        raise MalformedResponseError(f"Confidence {confidence} is outside 0-100")

    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str):
        raise MalformedResponseError("Classifier output missing 'reasoning'")

    indicators = payload.get("indicators") or {}
    if not isinstance(indicators, dict):
        raise MalformedResponseError("Classifier 'indicators' must be an object")

    return Classification(
        label=label,
        confidence=confidence,
        reasoning=reasoning.strip(),
        system_indicators=_string_tuple(indicators, "systemIndicators"),
        human_indicators=_string_tuple(indicators, "humanIndicators"),
    )


def _string_tuple(container: dict[str, Any], key: str) -> tuple[str, ...]:
    items = container.get(key) or []
    if not isinstance(items, list) or any(not isinstance(item, str) for item in items):
        raise MalformedResponseError(f"Classifier '{key}' must be a list of strings")
    return tuple(item.strip() for item in items if item.strip())


__all__ = [
    "ClassifierError",
    "ClassifierUnavailableError",
    "MalformedResponseError",
    "MissingApiKeyError",
    "OpenAIClassifier",
    "parse_classification",
]
