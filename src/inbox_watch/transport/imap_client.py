"""IMAP transport adapter providing mailbox access."""

from __future__ import annotations

import imaplib
import logging
import re
import ssl
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from ..core.config import ImapSettings
from ..core.interfaces import MailTransport
from ..core.models import FetchedMessage, MailboxInfo, MessageHandle, SearchCriterion

LOGGER = logging.getLogger(__name__)

_UID_PATTERN = re.compile(rb"UID (\d+)")
_SEQUENCE_PATTERN = re.compile(rb"^(\d+) ")


class ImapError(RuntimeError):
    """Wrap low level IMAP errors with additional context."""


class AuthenticationError(ImapError):
    """The server rejected the configured credentials."""


class ConnectivityError(ImapError):
    """The server could not be reached or the connection dropped."""


class ProtocolError(ImapError):
    """The server answered with something other than a valid response."""


class MailboxError(ImapError):
    """The requested mailbox does not exist or cannot be opened."""


class FetchError(ImapError):
    """Retrieving a message payload failed."""


class ImapClient(MailTransport):
    """Thin wrapper around ``imaplib`` offering typed search and fetch helpers."""

    def __init__(self, settings: ImapSettings, mailbox: str | None = None) -> None:
        """Initialise the client with configuration settings and mailbox."""
        self._settings = settings
        self._connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = None
        self.mailbox = mailbox or settings.mailbox

    # Public API ---------------------------------------------------------------
    def connect(self) -> None:
        """Open the IMAP connection and authenticate."""
        if self._connection is not None:
            return

        username = self._settings.username
        password = self._settings.app_password
        if not username or not password:
            raise AuthenticationError("IMAP credentials are not configured")

        connection = self._open_connection()
        try:
            LOGGER.debug("Authenticating as %s", username)
            connection.login(username, password)
        except imaplib.IMAP4.abort as exc:
            _shutdown_quietly(connection)
            raise ConnectivityError("Connection dropped during login") from exc
        except imaplib.IMAP4.error as exc:
            _shutdown_quietly(connection)
            raise AuthenticationError(f"Login failed for {username}: {exc}") from exc
        except OSError as exc:
            _shutdown_quietly(connection)
            raise ConnectivityError(f"Network error during login: {exc}") from exc
        self._connection = connection
        LOGGER.info("Connected to email server %s", self._settings.host)

    def select_mailbox(self, name: str, *, read_only: bool = False) -> MailboxInfo:
        """Select ``name`` and report how many messages it holds."""
        connection = self._require_connection()
        try:
            status, data = connection.select(_quote(name), readonly=read_only)
        except imaplib.IMAP4.abort as exc:
            raise ConnectivityError(f"Connection dropped opening '{name}'") from exc
        except imaplib.IMAP4.error as exc:
            raise MailboxError(f"Unable to select mailbox '{name}': {exc}") from exc
        except OSError as exc:
            raise ConnectivityError(f"Network error opening '{name}': {exc}") from exc
        if status != "OK":
            raise MailboxError(f"Unable to select mailbox '{name}'")

        try:
            total = int(data[0]) if data and data[0] else 0
        except (TypeError, ValueError) as exc:
            raise ProtocolError(f"Unexpected SELECT response: {data!r}") from exc
        self.mailbox = name
        return MailboxInfo(name=name, total_messages=total)

    def search(self, criterion: SearchCriterion) -> list[MessageHandle]:
        """Return handles for messages matching ``criterion``."""
        connection = self._require_connection()
        charset: str | None = None
        tokens: list[str] = []
        if criterion.unseen_only:
            tokens.append("UNSEEN")
        if criterion.subject:
            if criterion.subject.isascii():
                tokens.extend(["SUBJECT", _quote(criterion.subject)])
            else:
                # imaplib sends the pending literal after the last argument.
                charset = "UTF-8"
                connection.literal = criterion.subject.encode("utf-8")  # type: ignore[attr-defined]
                tokens.append("SUBJECT")
        if not tokens:
            tokens.append("ALL")

        LOGGER.debug("Searching mailbox %s with %s", self.mailbox, tokens)
        status, data = self._run(lambda: connection.search(charset, *tokens), "SEARCH")
        if status != "OK":
            raise ProtocolError(f"Search failed with status {status}")
        raw_ids = data[0].split() if data and data[0] else []
        return [MessageHandle(sequence_id=raw_id.decode()) for raw_id in raw_ids]

    def resolve_unique_ids(
        self, handles: Sequence[MessageHandle]
    ) -> list[MessageHandle]:
        """Return ``handles`` annotated with the UID reported by the server."""
        if not handles:
            return []
        connection = self._require_connection()
        message_set = ",".join(handle.sequence_id for handle in handles)
        status, data = self._run(
            lambda: connection.fetch(message_set, "(UID)"), "FETCH UID"
        )
        if status != "OK":
            raise ProtocolError(f"UID lookup failed with status {status}")

        uids: dict[str, str] = {}
        for entry in data or []:
            line = entry[0] if isinstance(entry, tuple) else entry
            if not isinstance(line, bytes):
                continue
            sequence_match = _SEQUENCE_PATTERN.match(line)
            uid_match = _UID_PATTERN.search(line)
            if sequence_match and uid_match:
                uids[sequence_match.group(1).decode()] = uid_match.group(1).decode()

        resolved: list[MessageHandle] = []
        for handle in handles:
            uid = uids.get(handle.sequence_id)
            if uid is None:
                LOGGER.warning(
                    "Server reported no UID for message %s; skipping",
                    handle.sequence_id,
                )
                continue
            resolved.append(MessageHandle(sequence_id=handle.sequence_id, uid=uid))
        return resolved

    def fetch(self, handles: Sequence[MessageHandle]) -> Iterator[FetchedMessage]:
        """Yield RFC822 payloads one message at a time, in ``handles`` order."""
        connection = self._require_connection()
        pending = list(handles)

        def generator() -> Iterator[FetchedMessage]:
            for handle in pending:
                LOGGER.debug("Fetching RFC822 payload for message %s", handle.sequence_id)
                try:
                    status, data = connection.fetch(handle.sequence_id, "(UID RFC822)")
                except (imaplib.IMAP4.error, OSError) as exc:
                    raise FetchError(
                        f"Failed to fetch message {handle.sequence_id}: {exc}"
                    ) from exc
                if status != "OK":
                    raise FetchError(f"Failed to fetch message {handle.sequence_id}")
                payload, uid = _extract_rfc822(data)
                if payload is None:
                    raise FetchError(
                        f"No RFC822 payload returned for message {handle.sequence_id}"
                    )
                resolved_uid = uid or handle.uid
                if resolved_uid is None:
                    raise FetchError(
                        f"No UID returned for message {handle.sequence_id}"
                    )
                yield FetchedMessage(handle=handle, uid=resolved_uid, raw=payload)

        return generator()

    def mark_seen(self, uid: str) -> None:
        """Set the ``\\Seen`` flag on the message with ``uid``."""
        connection = self._require_connection()
        LOGGER.debug("Marking UID %s as seen", uid)
        status, _ = self._run(
            lambda: connection.uid("STORE", uid, "+FLAGS", r"(\Seen)"), "STORE"
        )
        if status != "OK":
            raise ProtocolError(f"Failed to mark message UID {uid} as seen")

    def close(self) -> None:
        """Terminate the IMAP session cleanly."""
        if self._connection is None:
            return
        try:
            LOGGER.debug("Closing IMAP connection")
            if self._connection.state == "SELECTED":
                self._connection.close()
        except (imaplib.IMAP4.error, OSError):  # pragma: no cover - server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            _shutdown_quietly(self._connection)
            self._connection = None
            LOGGER.info("IMAP connection ended")

    # Internal helpers ---------------------------------------------------------
    def _open_connection(self) -> imaplib.IMAP4 | imaplib.IMAP4_SSL:
        host = self._settings.host
        port = self._settings.port
        try:
            if self._settings.use_ssl:
                LOGGER.debug("Connecting to IMAP host %s:%s via SSL", host, port)
                return imaplib.IMAP4_SSL(
                    host, port, ssl_context=_build_ssl_context(self._settings)
                )
            LOGGER.debug("Connecting to IMAP host %s:%s without SSL", host, port)
            return imaplib.IMAP4(host, port)
        except imaplib.IMAP4.error as exc:
            raise ProtocolError(f"Unexpected greeting from {host}: {exc}") from exc
        except OSError as exc:
            raise ConnectivityError(f"Unable to reach {host}:{port}: {exc}") from exc

    def _require_connection(self) -> imaplib.IMAP4 | imaplib.IMAP4_SSL:
        if self._connection is None:
            raise ConnectivityError("IMAP connection has not been established")
        return self._connection

    def _run(
        self, command: Callable[[], tuple[str, list[Any]]], label: str
    ) -> tuple[str, list[Any]]:
        try:
            return command()
        except imaplib.IMAP4.abort as exc:
            raise ConnectivityError(f"Connection dropped during {label}") from exc
        except imaplib.IMAP4.error as exc:
            raise ProtocolError(f"{label} rejected: {exc}") from exc
        except OSError as exc:
            raise ConnectivityError(f"Network error during {label}: {exc}") from exc


def _build_ssl_context(settings: ImapSettings) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if not settings.verify_certificates:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _shutdown_quietly(connection: imaplib.IMAP4 | imaplib.IMAP4_SSL) -> None:
    try:
        connection.logout()
    except (imaplib.IMAP4.error, OSError):  # pragma: no cover
        LOGGER.debug("IMAP logout raised; suppressing during shutdown")


def _extract_rfc822(
    fetch_data: list[tuple[bytes, bytes] | bytes] | None,
) -> tuple[bytes | None, str | None]:
    """Extract the RFC822 payload and UID from ``imaplib`` response chunks."""
    payload: bytes | None = None
    uid: str | None = None
    for entry in fetch_data or []:
        header = entry[0] if isinstance(entry, tuple) else entry
        if isinstance(header, bytes):
            match = _UID_PATTERN.search(header)
            if match:
                uid = match.group(1).decode()
        if isinstance(entry, tuple) and len(entry) == 2 and payload is None:
            payload = entry[1]
    return payload, uid


__all__ = [
    "AuthenticationError",
    "ConnectivityError",
    "FetchError",
    "ImapClient",
    "ImapError",
    "MailboxError",
    "ProtocolError",
]
