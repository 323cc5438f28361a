"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path

from inbox_watch.cli import build_parser, execute
from inbox_watch.core.config import AppSettings, ClassifierSettings


def test_parser_defaults_to_serve() -> None:
    args = build_parser().parse_args([])

    assert args.command == "serve"
    assert args.env_file == Path(".env")


def test_info_prints_settings_summary(capsys) -> None:
    settings = AppSettings(classifier=ClassifierSettings(api_key="sk-test"))
    args = build_parser().parse_args(["info"])

    assert execute(args, settings) == 0

    out = capsys.readouterr().out
    assert "IMAP host: imap.gmail.com:993" in out
    assert "Classifier API key set: yes" in out
    assert 'Watched subject: "read emails from this subject line"' in out


def test_serve_refuses_to_start_without_api_key() -> None:
    args = build_parser().parse_args(["serve"])

    assert execute(args, AppSettings()) == 1


def test_check_refuses_to_start_without_api_key() -> None:
    args = build_parser().parse_args(["check"])

    assert execute(args, AppSettings()) == 1
