"""Utilities for parsing raw RFC822 messages into display-ready models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.errors import MessageError
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import format_datetime, parsedate_to_datetime

from ..core.models import ParsedMessage

UNKNOWN_ADDRESS = "Unknown"
NO_SUBJECT = "No Subject"
UNKNOWN_DATE = "Unknown Date"
NO_CONTENT = "No content available"


class ParseError(RuntimeError):
    """Raised when a payload cannot be turned into a message."""


class EmailParser:
    """Convert raw email payloads into :class:`ParsedMessage` instances."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, payload: bytes) -> ParsedMessage:
        """Parse raw RFC822 bytes, substituting placeholders for absent fields."""
        if not payload or not payload.strip():
            raise ParseError("Message payload is empty")
        try:
            message = self._parser.parsebytes(payload)
            sender = _header_text(message, "From") or UNKNOWN_ADDRESS
            recipient = _header_text(message, "To") or UNKNOWN_ADDRESS
            subject = _header_text(message, "Subject") or NO_SUBJECT
            raw_date = _header_text(message, "Date")
            body_text, body_html = _extract_bodies(message)
        except (MessageError, LookupError, UnicodeError, ValueError, TypeError) as exc:
            raise ParseError(f"Unable to parse message: {exc}") from exc

        sent_at = _try_parse_datetime(raw_date)
        if sent_at is not None:
            date = format_datetime(sent_at)
        else:
            date = raw_date or UNKNOWN_DATE

        return ParsedMessage(
            sender=sender,
            recipient=recipient,
            subject=subject,
            date=date,
            sent_at=sent_at,
            body=body_text or body_html or NO_CONTENT,
        )


def _header_text(message: EmailMessage, name: str) -> str | None:
    value = message.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: EmailMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        if part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        try:
            content_obj = part.get_content()
        except LookupError:
            # Unknown charset label; decode the raw bytes leniently instead.
            raw = part.get_payload(decode=True)
            content_obj = (
                raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else None
            )
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        else:
            html_chunks.append(content)

    text = _collapse_chunks(plain_chunks, "\n\n")
    html = _collapse_chunks(html_chunks, "\n")
    return text, html


def _try_parse_datetime(header_value: str | None) -> datetime | None:
    if header_value is None:
        return None
    try:
        return parsedate_to_datetime(header_value)
    except (TypeError, ValueError, IndexError):
        return None


__all__ = [
    "EmailParser",
    "NO_CONTENT",
    "NO_SUBJECT",
    "ParseError",
    "UNKNOWN_ADDRESS",
    "UNKNOWN_DATE",
]
