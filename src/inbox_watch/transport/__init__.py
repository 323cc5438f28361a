"""Transport adapters for external mailbox providers."""

from .imap_client import (
    AuthenticationError,
    ConnectivityError,
    FetchError,
    ImapClient,
    ImapError,
    MailboxError,
    ProtocolError,
)

__all__ = [
    "AuthenticationError",
    "ConnectivityError",
    "FetchError",
    "ImapClient",
    "ImapError",
    "MailboxError",
    "ProtocolError",
]
