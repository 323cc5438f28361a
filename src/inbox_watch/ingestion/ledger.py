"""In-memory record of messages already handled by this process."""

from __future__ import annotations


class DedupLedger:
    """Set of processed message UIDs.

    Entries are never evicted; the ledger lives exactly as long as the process.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def has(self, uid: str) -> bool:
        """Return ``True`` if ``uid`` was already processed."""
        return uid in self._seen

    def add(self, uid: str) -> None:
        """Record ``uid`` as processed."""
        self._seen.add(uid)

    def __contains__(self, uid: object) -> bool:
        return uid in self._seen

    def __len__(self) -> int:
        return len(self._seen)


__all__ = ["DedupLedger"]
