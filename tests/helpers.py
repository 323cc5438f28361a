"""Fakes shared by the scheduler and web application tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence

from inbox_watch.core.models import (
    Classification,
    ClassificationLabel,
    FetchedMessage,
    MailboxInfo,
    MessageHandle,
    SearchCriterion,
)
from inbox_watch.transport import FetchError


def make_raw_email(subject: str, body: str, *, sender: str = "alice@example.com") -> bytes:
    """Build a minimal RFC822 payload."""
    return (
        f"From: {sender}\r\n"
        "To: bob@example.com\r\n"
        f"Subject: {subject}\r\n"
        "Date: Tue, 14 Oct 2025 09:30:00 +0000\r\n"
        "\r\n"
        f"{body}\r\n"
    ).encode()


class FakeMailbox:
    """Mail transport serving fixed messages keyed by sequence number."""

    def __init__(
        self,
        messages: dict[str, tuple[str, bytes]] | None = None,
        events: list[str] | None = None,
        *,
        connect_error: Exception | None = None,
        fail_fetch_at: int | None = None,
    ) -> None:
        self.mailbox = "INBOX"
        self.messages = messages or {}
        self.events = events if events is not None else []
        self.connect_error = connect_error
        self.fail_fetch_at = fail_fetch_at
        self.connects = 0
        self.closes = 0
        self.selected: list[tuple[str, bool]] = []
        self.criteria: list[SearchCriterion] = []
        self.fetched: list[str] = []
        self.seen: list[str] = []

    def connect(self) -> None:
        self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error

    def select_mailbox(self, name: str, *, read_only: bool) -> MailboxInfo:
        self.selected.append((name, read_only))
        return MailboxInfo(name=name, total_messages=len(self.messages))

    def search(self, criterion: SearchCriterion) -> list[MessageHandle]:
        self.criteria.append(criterion)
        return [MessageHandle(sequence_id=seq) for seq in self.messages]

    def resolve_unique_ids(
        self, handles: Sequence[MessageHandle]
    ) -> list[MessageHandle]:
        return [
            MessageHandle(sequence_id=h.sequence_id, uid=self.messages[h.sequence_id][0])
            for h in handles
        ]

    def fetch(self, handles: Sequence[MessageHandle]) -> Iterator[FetchedMessage]:
        for position, handle in enumerate(handles):
            if self.fail_fetch_at is not None and position >= self.fail_fetch_at:
                raise FetchError("stream interrupted")
            uid, raw = self.messages[handle.sequence_id]
            self.events.append(f"fetch:{uid}")
            self.fetched.append(uid)
            yield FetchedMessage(handle=handle, uid=uid, raw=raw)

    def mark_seen(self, uid: str) -> None:
        self.seen.append(uid)

    def close(self) -> None:
        self.closes += 1


class StubClassifier:
    """Classifier returning a fixed verdict, failing for chosen subjects."""

    def __init__(
        self,
        *,
        failures: dict[str, Exception] | None = None,
        gate: asyncio.Event | None = None,
        connection_ok: bool = True,
    ) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.failures = failures or {}
        self.gate = gate
        self.entered = asyncio.Event() if gate is not None else None
        self.connection_ok = connection_ok
        self.closed = False

    async def classify(self, sender: str, subject: str, body: str) -> Classification:
        self.calls.append((sender, subject, body))
        if self.gate is not None and self.entered is not None:
            self.entered.set()
            await self.gate.wait()
        if subject in self.failures:
            raise self.failures[subject]
        return Classification(
            label=ClassificationLabel.HUMAN_GENERATED,
            confidence=92,
            reasoning="Personal greeting and conversational tone.",
            system_indicators=(),
            human_indicators=("Personal greeting",),
        )

    async def test_connection(self) -> bool:
        return self.connection_ok

    async def aclose(self) -> None:
        self.closed = True


class StubNotifier:
    """Notifier recording alerts into a shared event log."""

    def __init__(self, events: list[str] | None = None) -> None:
        self.events = events if events is not None else []
        self.alerts = 0

    def alert(self) -> None:
        self.alerts += 1
        self.events.append("alert")

    async def drain(self) -> None:
        return None

    async def aclose(self) -> None:
        return None
