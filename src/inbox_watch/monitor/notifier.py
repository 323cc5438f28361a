"""Audible new-mail alerts with a visual fallback."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import sys
from collections.abc import Callable

from inbox_watch.core.config import NotifierSettings
from inbox_watch.core.interfaces import Notifier

LOGGER = logging.getLogger(__name__)

VISUAL_MARKER = "BEEP! New email detected!"


class SoundNotifier(Notifier):
    """Play a sequence of alert pulses in the background.

    Each call to :meth:`alert` spawns its own task; the caller never waits for
    it. Every pulse tries the configured sound commands in order and prints a
    visible marker when none of them works.
    """

    def __init__(
        self,
        settings: NotifierSettings,
        *,
        output: Callable[[str], None] = print,
    ) -> None:
        self._settings = settings
        self._output = output
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of pulse tasks that have not finished yet."""
        return len(self._tasks)

    def alert(self) -> asyncio.Task[None]:
        """Start an alert sequence; must be called from a running event loop."""
        LOGGER.info("Playing notification sound for new email")
        task = asyncio.get_running_loop().create_task(self._run_sequence())
        self._track(task)
        return task

    async def drain(self) -> None:
        """Wait until every running alert sequence has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding alert sequences."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_sequence(self) -> None:
        # Pulses are spawned on a fixed cadence so a slow sound command never
        # delays the next one.
        pulses: list[asyncio.Task[None]] = []
        for index in range(self._settings.pulse_count):
            if index:
                await asyncio.sleep(self._settings.pulse_spacing_seconds)
            pulse = asyncio.get_running_loop().create_task(self._pulse())
            self._track(pulse)
            pulses.append(pulse)
        await asyncio.gather(*pulses, return_exceptions=True)
        LOGGER.info("Notification sound sequence completed")

    async def _pulse(self) -> None:
        if self._settings.terminal_bell:
            sys.stdout.write("\a")
            sys.stdout.flush()
        if await self._play_sound():
            return
        for _ in range(3):
            self._output(VISUAL_MARKER)

    async def _play_sound(self) -> bool:
        for command in self._settings.sound_commands:
            if not command or shutil.which(command[0]) is None:
                continue
            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                try:
                    return_code = await process.wait()
                except asyncio.CancelledError:
                    with contextlib.suppress(ProcessLookupError):
                        process.kill()
                    raise
            except OSError as exc:
                LOGGER.debug("Sound command %s failed: %s", command[0], exc)
                continue
            if return_code == 0:
                return True
            LOGGER.debug("Sound command %s exited with %s", command[0], return_code)
        return False

    def _track(self, task: asyncio.Task[None]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


__all__ = ["SoundNotifier", "VISUAL_MARKER"]
