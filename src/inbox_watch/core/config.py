"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ImapSettings(BaseModel):
    """Settings controlling IMAP connectivity."""

    host: str = Field(default="imap.gmail.com", description="IMAP hostname")
    port: int = Field(default=993, description="IMAP port, typically 993 for SSL")
    username: str | None = Field(
        default="your-email@gmail.com", description="Account username"
    )
    app_password: str | None = Field(
        default="your-app-password", description="Account or app password"
    )
    mailbox: str = Field(default="INBOX", description="Mailbox to monitor")
    use_ssl: bool = Field(default=True, description="Whether to enforce SSL")
    verify_certificates: bool = Field(
        default=True, description="Validate the server TLS certificate"
    )


class ClassifierSettings(BaseModel):
    """Settings for the OpenAI-compatible classification backend."""

    api_key: str | None = Field(default=None, description="Bearer token for the API")
    base_url: str = Field(
        default="https://api.openai.com/v1", description="Chat completions base URL"
    )
    model: str = Field(default="gpt-4o-mini", description="Model identifier")
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for classification requests",
    )
    timeout_seconds: float | None = Field(
        default=None, description="Request timeout; unset means wait indefinitely"
    )


class MonitorSettings(BaseModel):
    """Settings controlling the poll loop."""

    subject: str = Field(
        default="read emails from this subject line",
        description="Exact subject line to watch for",
    )
    interval_seconds: float = Field(
        default=10.0, gt=0, description="Seconds between scheduled poll cycles"
    )
    autostart: bool = Field(
        default=True, description="Start monitoring when the service boots"
    )
    mark_as_seen: bool = Field(
        default=False, description="Set the \\Seen flag on processed messages"
    )
    prevent_overlap: bool = Field(
        default=False,
        description="Skip a scheduled cycle while the previous one is running",
    )


class NotifierSettings(BaseModel):
    """Settings for the audible new-mail alert."""

    pulse_count: int = Field(default=10, ge=1, description="Pulses per alert")
    pulse_spacing_seconds: float = Field(
        default=2.0, ge=0.0, description="Delay between pulses"
    )
    terminal_bell: bool = Field(
        default=True, description="Write the ASCII bell on every pulse"
    )
    sound_commands: list[list[str]] = Field(
        default_factory=lambda: [
            ["afplay", "/System/Library/Sounds/Ping.aiff"],
            ["afplay", "/System/Library/Sounds/Glass.aiff"],
            ["powershell.exe", "-c", "[console]::beep(800,200)"],
            ["beep"],
        ],
        description="Sound commands tried in order until one succeeds",
    )


class ServerSettings(BaseModel):
    """HTTP control surface settings."""

    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=3000, description="Listen port")


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    imap: ImapSettings = Field(default_factory=ImapSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    notifier: NotifierSettings = Field(default_factory=NotifierSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "INBOX_WATCH_"

# Flat variable names understood for compatibility with existing deployments.
FLAT_ENV_KEYS: dict[str, list[str]] = {
    "EMAIL_USER": ["imap", "username"],
    "EMAIL_PASSWORD": ["imap", "app_password"],
    "EMAIL_HOST": ["imap", "host"],
    "EMAIL_PORT": ["imap", "port"],
    "OPENAI_API_KEY": ["classifier", "api_key"],
    "PORT": ["server", "port"],
}


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _coerce_value(value: str | None) -> Any:
    if value is None or value == "":
        return None
    lowercase_value = value.lower()
    if lowercase_value == "true":
        return True
    if lowercase_value == "false":
        return False
    return value


def _is_recognised(key: str | None) -> bool:
    return bool(key) and (key.startswith(ENV_PREFIX) or key in FLAT_ENV_KEYS)


def _collect_env_values(
    env_file: Path | str | None, include_environment: bool
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values: dict[str, str | None] = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if _is_recognised(key)
            }

    env_values: dict[str, str | None] = {}
    if include_environment:
        env_values = {
            key: value for key, value in os.environ.items() if _is_recognised(key)
        }

    combined = {**file_values, **env_values}

    # Flat keys first so that prefixed keys take precedence.
    ordered = sorted(combined.items(), key=lambda item: item[0].startswith(ENV_PREFIX))
    for key, value in ordered:
        path = FLAT_ENV_KEYS.get(key) or _normalize_key(key)
        if not path:
            continue
        normalized_value = _coerce_value(value)
        if normalized_value is None and key in FLAT_ENV_KEYS:
            # An empty flat variable falls back to the documented default.
            continue
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ClassifierSettings",
    "ImapSettings",
    "LoggingSettings",
    "MonitorSettings",
    "NotifierSettings",
    "ServerSettings",
    "load_app_settings",
]
