"""LLM-powered intelligence services."""

from .classifier import (
    ClassifierError,
    ClassifierUnavailableError,
    MalformedResponseError,
    MissingApiKeyError,
    OpenAIClassifier,
    parse_classification,
)

__all__ = [
    "ClassifierError",
    "ClassifierUnavailableError",
    "MalformedResponseError",
    "MissingApiKeyError",
    "OpenAIClassifier",
    "parse_classification",
]
