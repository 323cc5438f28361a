"""Protocol interfaces for decoupling components."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from typing import Protocol

from .models import (
    Classification,
    FetchedMessage,
    MailboxInfo,
    MessageHandle,
    ParsedMessage,
    SearchCriterion,
)


class MailTransport(Protocol):
    """Abstraction over a mailbox session such as IMAP."""

    mailbox: str

    def connect(self) -> None:
        """Open and authenticate the session."""
        raise NotImplementedError

    def select_mailbox(self, name: str, *, read_only: bool) -> MailboxInfo:
        """Select ``name`` for subsequent search and fetch calls."""
        raise NotImplementedError

    def search(self, criterion: SearchCriterion) -> list[MessageHandle]:
        """Return handles for messages matching ``criterion``."""
        raise NotImplementedError

    def resolve_unique_ids(
        self, handles: Sequence[MessageHandle]
    ) -> list[MessageHandle]:
        """Return ``handles`` annotated with their provider UIDs."""
        raise NotImplementedError

    def fetch(self, handles: Sequence[MessageHandle]) -> Iterator[FetchedMessage]:
        """Lazily yield raw payloads for ``handles`` in order."""
        raise NotImplementedError

    def mark_seen(self, uid: str) -> None:
        """Flag the message with ``uid`` as read."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any network resources. Safe to call repeatedly."""
        raise NotImplementedError


class MessageParser(Protocol):
    """Converts raw RFC822 payloads into display-ready messages."""

    def parse(self, payload: bytes) -> ParsedMessage:
        """Parse ``payload`` or raise ``ParseError``."""
        raise NotImplementedError


class EmailClassifier(Protocol):
    """Decides whether an email was written by a person or a system."""

    async def classify(self, sender: str, subject: str, body: str) -> Classification:
        """Return a verdict for the supplied email fields."""
        raise NotImplementedError

    async def test_connection(self) -> bool:
        """Return ``True`` when the backend answers a trivial request."""
        raise NotImplementedError


class Notifier(Protocol):
    """Raises a user-facing alert for newly discovered mail."""

    def alert(self) -> asyncio.Task[None]:
        """Start an alert sequence in the background."""
        raise NotImplementedError


__all__ = [
    "EmailClassifier",
    "MailTransport",
    "MessageParser",
    "Notifier",
]
