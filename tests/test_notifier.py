"""Tests for the audible alert notifier."""

from __future__ import annotations

import asyncio
import sys
import time

import pytest

from inbox_watch.core.config import NotifierSettings
from inbox_watch.monitor import SoundNotifier
from inbox_watch.monitor.notifier import VISUAL_MARKER


def _notifier(commands: list[list[str]], output: list[str], **overrides: object):
    values: dict[str, object] = {"terminal_bell": False, "pulse_spacing_seconds": 0}
    values.update(overrides)
    settings = NotifierSettings(sound_commands=commands, **values)
    return SoundNotifier(settings, output=output.append)


def test_alert_falls_back_to_visual_marker() -> None:
    output: list[str] = []
    notifier = _notifier([], output, pulse_count=2)

    async def scenario() -> None:
        task = notifier.alert()
        await task
        assert notifier.pending == 0

    asyncio.run(scenario())

    assert output == [VISUAL_MARKER] * 6


def test_missing_command_is_skipped() -> None:
    output: list[str] = []
    notifier = _notifier([["definitely-not-a-sound-player"]], output, pulse_count=1)

    async def scenario() -> None:
        notifier.alert()
        await notifier.drain()

    asyncio.run(scenario())

    assert output == [VISUAL_MARKER] * 3


def test_first_succeeding_command_suppresses_marker() -> None:
    output: list[str] = []
    commands = [
        [sys.executable, "-c", "raise SystemExit(1)"],
        [sys.executable, "-c", "pass"],
    ]
    notifier = _notifier(commands, output, pulse_count=2)

    async def scenario() -> None:
        notifier.alert()
        await notifier.drain()

    asyncio.run(scenario())

    assert output == []


def test_aclose_cancels_running_sequence() -> None:
    output: list[str] = []
    notifier = _notifier([], output, pulse_count=5, pulse_spacing_seconds=60)

    async def scenario() -> asyncio.Task[None]:
        task = notifier.alert()
        await asyncio.sleep(0.01)
        await notifier.aclose()
        return task

    task = asyncio.run(scenario())

    assert task.cancelled()
    assert output == [VISUAL_MARKER] * 3
    assert notifier.pending == 0


def test_default_settings_pulse_ten_times_two_seconds_apart() -> None:
    settings = NotifierSettings()

    assert settings.pulse_count == 10
    assert settings.pulse_spacing_seconds == 2.0
    assert settings.terminal_bell is True


def test_pulses_are_spaced_by_configured_interval() -> None:
    stamps: list[float] = []

    def record(_text: str) -> None:
        stamps.append(time.monotonic())

    settings = NotifierSettings(
        sound_commands=[],
        terminal_bell=False,
        pulse_count=3,
        pulse_spacing_seconds=0.05,
    )
    notifier = SoundNotifier(settings, output=record)

    async def scenario() -> None:
        notifier.alert()
        await notifier.drain()

    asyncio.run(scenario())

    pulse_starts = stamps[::3]
    assert len(pulse_starts) == 3
    gaps = [later - earlier for earlier, later in zip(pulse_starts, pulse_starts[1:])]
    assert all(gap >= 0.04 for gap in gaps)


class _HangingProcess:
    def __init__(self) -> None:
        self.killed = False

    async def wait(self) -> int:
        await asyncio.Event().wait()
        return 0

    def kill(self) -> None:
        self.killed = True


def test_aclose_kills_running_sound_command(monkeypatch: pytest.MonkeyPatch) -> None:
    process = _HangingProcess()

    async def spawn(*args, **kwargs) -> _HangingProcess:
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", spawn)
    output: list[str] = []
    notifier = _notifier([[sys.executable, "-c", "pass"]], output, pulse_count=1)

    async def scenario() -> None:
        notifier.alert()
        await asyncio.sleep(0.01)
        await notifier.aclose()

    asyncio.run(scenario())

    assert process.killed
    assert output == []
