"""Core domain models used across the application."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True, slots=True)
class SearchCriterion:
    """Mailbox search filter."""

    subject: str
    unseen_only: bool = True


@dataclass(frozen=True, slots=True)
class MessageHandle:
    """Search result pointing at a message within one mailbox session.

    ``sequence_id`` is only meaningful for the session that produced it. The
    provider-assigned ``uid`` is resolved from the message attributes and is
    the identity used for deduplication.
    """

    sequence_id: str
    uid: str | None = None


@dataclass(frozen=True, slots=True)
class MailboxInfo:
    """Details reported when a mailbox is selected."""

    name: str
    total_messages: int


@dataclass(frozen=True, slots=True)
class FetchedMessage:
    """Raw RFC822 payload paired with its handle and UID."""

    handle: MessageHandle
    uid: str
    raw: bytes


@dataclass(frozen=True, slots=True)
class ParsedMessage:
    """Display-ready representation of a fetched email."""

    sender: str
    recipient: str
    subject: str
    date: str
    sent_at: datetime | None
    body: str


class ClassificationLabel(str, Enum):
    """Verdict describing who authored an email."""

    SYSTEM_GENERATED = "system-generated"
    HUMAN_GENERATED = "human-generated"


@dataclass(frozen=True, slots=True)
class Classification:
    """Structured verdict returned by the classifier backend."""

    label: ClassificationLabel
    confidence: int
    reasoning: str
    system_indicators: tuple[str, ...] = ()
    human_indicators: tuple[str, ...] = ()


@dataclass(slots=True)
class CycleReport:
    """Outcome summary for a poll cycle."""

    manual: bool
    matched: int = 0
    new: int = 0
    processed: int = 0
    classified: int = 0
    failed: int = 0


class SchedulerState(str, Enum):
    """Lifecycle states of the poll scheduler."""

    IDLE = "idle"
    SCHEDULED = "scheduled"
    CYCLE_RUNNING = "cycle-running"


@dataclass(slots=True)
class MonitoringState:
    """Mutable monitoring flags owned by a single scheduler."""

    running: bool = False
    timer: asyncio.Task[None] | None = field(default=None, repr=False)


__all__ = [
    "Classification",
    "ClassificationLabel",
    "CycleReport",
    "FetchedMessage",
    "MailboxInfo",
    "MessageHandle",
    "MonitoringState",
    "ParsedMessage",
    "SchedulerState",
    "SearchCriterion",
]
