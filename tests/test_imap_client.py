"""Tests for the IMAP transport adapter."""

# pylint: disable=protected-access

from __future__ import annotations

import imaplib
from unittest.mock import MagicMock

import pytest

from inbox_watch.core.config import ImapSettings
from inbox_watch.core.models import MessageHandle, SearchCriterion
from inbox_watch.transport import (
    AuthenticationError,
    ConnectivityError,
    FetchError,
    ImapClient,
    MailboxError,
)


def _settings(**overrides: object) -> ImapSettings:
    values: dict[str, object] = {
        "host": "imap.test",
        "port": 993,
        "username": "user",
        "app_password": "password",
        "use_ssl": False,
    }
    values.update(overrides)
    return ImapSettings(**values)


def _connected_client() -> tuple[ImapClient, MagicMock]:
    client = ImapClient(_settings())
    connection = MagicMock()
    client._connection = connection  # type: ignore[attr-defined]
    return client, connection


def test_search_returns_sequence_handles() -> None:
    client, connection = _connected_client()
    connection.search.return_value = ("OK", [b"3 5"])

    handles = client.search(SearchCriterion(subject='say "hi"'))

    assert handles == [MessageHandle("3"), MessageHandle("5")]
    connection.search.assert_called_once_with(
        None, "UNSEEN", "SUBJECT", '"say \\"hi\\""'
    )


def test_search_without_matches_returns_empty_list() -> None:
    client, connection = _connected_client()
    connection.search.return_value = ("OK", [b""])

    assert client.search(SearchCriterion(subject="nothing")) == []


def test_non_ascii_subject_is_sent_as_literal() -> None:
    client, connection = _connected_client()
    connection.search.return_value = ("OK", [b"7"])

    client.search(SearchCriterion(subject="Grüße"))

    connection.search.assert_called_once_with("UTF-8", "UNSEEN", "SUBJECT")
    assert connection.literal == "Grüße".encode()


def test_resolve_unique_ids_reads_uid_attributes() -> None:
    client, connection = _connected_client()
    connection.fetch.return_value = ("OK", [b"3 (UID 103)", b"5 (UID 105)"])

    handles = client.resolve_unique_ids([MessageHandle("3"), MessageHandle("5")])

    assert [handle.uid for handle in handles] == ["103", "105"]
    connection.fetch.assert_called_once_with("3,5", "(UID)")


def test_resolve_unique_ids_drops_handles_without_uid() -> None:
    client, connection = _connected_client()
    connection.fetch.return_value = ("OK", [b"3 (UID 103)"])

    handles = client.resolve_unique_ids([MessageHandle("3"), MessageHandle("5")])

    assert handles == [MessageHandle("3", "103")]


def test_fetch_yields_payloads_lazily() -> None:
    client, connection = _connected_client()

    uids = {"3": "103", "5": "105"}

    def fetch(message_set, parts):
        assert parts == "(UID RFC822)"
        header = f"{message_set} (UID {uids[message_set]} RFC822 {{5}}".encode()
        return "OK", [(header, f"raw-{message_set}".encode()), b")"]

    connection.fetch.side_effect = fetch

    stream = client.fetch([MessageHandle("3"), MessageHandle("5", "105")])
    connection.fetch.assert_not_called()
    messages = list(stream)

    assert [message.uid for message in messages] == ["103", "105"]
    assert messages[0].raw == b"raw-3"
    assert messages[1].handle == MessageHandle("5", "105")


def test_fetch_failure_mid_stream_keeps_earlier_messages() -> None:
    client, connection = _connected_client()
    connection.fetch.side_effect = [
        ("OK", [(b"3 (UID 103 RFC822 {5}", b"raw-3"), b")"]),
        imaplib.IMAP4.abort("socket closed"),
    ]

    stream = client.fetch([MessageHandle("3", "103"), MessageHandle("5", "105")])
    first = next(stream)

    assert first.raw == b"raw-3"
    with pytest.raises(FetchError):
        next(stream)


def test_select_mailbox_reports_total() -> None:
    client, connection = _connected_client()
    connection.select.return_value = ("OK", [b"42"])

    info = client.select_mailbox("INBOX", read_only=False)

    assert info.total_messages == 42
    connection.select.assert_called_once_with('"INBOX"', readonly=False)


def test_select_missing_mailbox_raises() -> None:
    client, connection = _connected_client()
    connection.select.return_value = ("NO", [b"Mailbox doesn't exist"])

    with pytest.raises(MailboxError):
        client.select_mailbox("Missing", read_only=True)


def test_connect_maps_login_rejection(monkeypatch: pytest.MonkeyPatch) -> None:
    connection = MagicMock()
    connection.login.side_effect = imaplib.IMAP4.error("AUTHENTICATIONFAILED")
    monkeypatch.setattr(ImapClient, "_open_connection", lambda self: connection)
    client = ImapClient(_settings())

    with pytest.raises(AuthenticationError):
        client.connect()

    connection.logout.assert_called_once()


def test_connect_requires_credentials() -> None:
    client = ImapClient(_settings(username=None))

    with pytest.raises(AuthenticationError):
        client.connect()


def test_connect_maps_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(imaplib, "IMAP4_SSL", refuse)
    client = ImapClient(_settings(use_ssl=True))

    with pytest.raises(ConnectivityError):
        client.connect()


def test_close_is_idempotent() -> None:
    client, connection = _connected_client()
    connection.state = "SELECTED"

    client.close()
    client.close()

    connection.close.assert_called_once()
    connection.logout.assert_called_once()


def test_mark_seen_stores_flag() -> None:
    client, connection = _connected_client()
    connection.uid.return_value = ("OK", [b""])

    client.mark_seen("103")

    connection.uid.assert_called_once_with("STORE", "103", "+FLAGS", r"(\Seen)")


def test_select_mailbox_defaults_to_read_write() -> None:
    client, connection = _connected_client()
    connection.select.return_value = ("OK", [b"3"])

    client.select_mailbox("INBOX")

    connection.select.assert_called_once_with('"INBOX"', readonly=False)
    assert not hasattr(ImapClient, "__enter__")
