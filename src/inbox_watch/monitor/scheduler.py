"""Poll loop that watches the mailbox and drives the processing pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from inbox_watch.core.config import MonitorSettings
from inbox_watch.core.interfaces import (
    EmailClassifier,
    MailTransport,
    MessageParser,
    Notifier,
)
from inbox_watch.core.models import (
    CycleReport,
    FetchedMessage,
    MonitoringState,
    SchedulerState,
    SearchCriterion,
)
from inbox_watch.ingestion.ledger import DedupLedger
from inbox_watch.ingestion.parser import ParseError
from inbox_watch.intelligence.classifier import ClassifierError
from inbox_watch.report.renderer import (
    render_classification,
    render_classification_error,
    render_message,
)
from inbox_watch.transport.imap_client import ImapError

LOGGER = logging.getLogger(__name__)


class PollScheduler:
    """Own the monitoring state and run poll cycles on a fixed interval.

    A cycle connects, searches for unseen messages with the watched subject,
    alerts once per new message, then fetches, parses, classifies and reports
    each one before recording its UID in the ledger. Scheduled cycles fire on
    a wall-clock interval and may overlap when a cycle outlasts it, unless
    ``prevent_overlap`` is enabled.
    """

    def __init__(
        self,
        settings: MonitorSettings,
        *,
        mailbox_factory: Callable[[], MailTransport],
        parser: MessageParser,
        classifier: EmailClassifier,
        notifier: Notifier,
        ledger: DedupLedger | None = None,
        output: Callable[[str], None] = print,
    ) -> None:
        # pylint: disable=too-many-arguments
        self._settings = settings
        self._mailbox_factory = mailbox_factory
        self._parser = parser
        self._classifier = classifier
        self._notifier = notifier
        self._ledger = ledger if ledger is not None else DedupLedger()
        self._output = output
        self._criterion = SearchCriterion(subject=settings.subject, unseen_only=True)
        self._monitoring = MonitoringState()
        self._scheduled_in_flight = 0
        self._cycle_tasks: set[asyncio.Task[None]] = set()

    # State ---------------------------------------------------------------------
    @property
    def ledger(self) -> DedupLedger:
        """Processed-UID ledger shared by every cycle of this scheduler."""
        return self._ledger

    @property
    def criterion(self) -> SearchCriterion:
        """Search filter applied on every cycle."""
        return self._criterion

    @property
    def is_monitoring(self) -> bool:
        """Whether scheduled polling is armed."""
        return self._monitoring.running

    @property
    def state(self) -> SchedulerState:
        """Current lifecycle state of scheduled polling."""
        if not self._monitoring.running:
            return SchedulerState.IDLE
        if self._scheduled_in_flight:
            return SchedulerState.CYCLE_RUNNING
        return SchedulerState.SCHEDULED

    # Lifecycle -----------------------------------------------------------------
    def start(self) -> bool:
        """Arm the interval timer; the first cycle runs immediately."""
        if self._monitoring.running:
            LOGGER.warning("Email monitoring is already running")
            return False

        self._monitoring.running = True
        LOGGER.info(
            'Starting continuous email monitoring for subject: "%s"',
            self._criterion.subject,
        )
        LOGGER.info(
            "Checking for new emails every %s seconds",
            self._settings.interval_seconds,
        )
        self._monitoring.timer = asyncio.get_running_loop().create_task(
            self._timer_loop()
        )
        return True

    def stop(self) -> bool:
        """Disarm the timer. Cycles already running are left to finish."""
        if not self._monitoring.running:
            return False
        self._monitoring.running = False
        timer = self._monitoring.timer
        self._monitoring.timer = None
        if timer is not None:
            timer.cancel()
        LOGGER.info("Email monitoring stopped")
        return True

    async def wait_for_cycles(self) -> None:
        """Wait for every scheduled cycle that is still in flight."""
        while self._cycle_tasks:
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Stop monitoring and cancel in-flight scheduled cycles at shutdown."""
        self.stop()
        tasks = list(self._cycle_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _timer_loop(self) -> None:
        while self._monitoring.running:
            task = asyncio.get_running_loop().create_task(self._scheduled_cycle())
            self._cycle_tasks.add(task)
            task.add_done_callback(self._cycle_tasks.discard)
            await asyncio.sleep(self._settings.interval_seconds)

    async def _scheduled_cycle(self) -> None:
        if self._settings.prevent_overlap and self._scheduled_in_flight:
            LOGGER.info("Previous poll cycle still running; skipping this tick")
            return
        self._scheduled_in_flight += 1
        try:
            await self.run_cycle()
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-except
            LOGGER.error("Error during email check: %s", exc, exc_info=True)
        finally:
            self._scheduled_in_flight -= 1

    # Cycle ---------------------------------------------------------------------
    async def run_cycle(self, manual: bool = False) -> CycleReport:
        """Run one connect-search-process-close cycle.

        Connection level failures are logged and re-raised after the session
        is closed; per-message failures are logged and never abort the cycle.
        """
        report = CycleReport(manual=manual)
        subject = self._criterion.subject
        mailbox = self._mailbox_factory()
        try:
            await asyncio.to_thread(mailbox.connect)
            info = await asyncio.to_thread(
                mailbox.select_mailbox, mailbox.mailbox, read_only=False
            )
            LOGGER.info("Inbox opened. Total messages: %s", info.total_messages)

            handles = await asyncio.to_thread(mailbox.search, self._criterion)
            report.matched = len(handles)
            if not handles:
                LOGGER.info('No new emails found with subject: "%s"', subject)
                self._alert_for_manual_check(manual)
                return report

            handles = await asyncio.to_thread(mailbox.resolve_unique_ids, handles)
            new_handles = [
                handle
                for handle in handles
                if handle.uid is not None and not self._ledger.has(handle.uid)
            ]
            report.new = len(new_handles)
            if not new_handles:
                LOGGER.info(
                    'No new unprocessed emails found with subject: "%s"', subject
                )
                self._alert_for_manual_check(manual)
                return report

            LOGGER.info(
                'Found %s new emails with subject: "%s"', len(new_handles), subject
            )
            for _ in new_handles:
                self._notifier.alert()

            stream = mailbox.fetch(new_handles)
            while True:
                fetched = await asyncio.to_thread(next, stream, None)
                if fetched is None:
                    break
                await self._process_message(
                    mailbox, fetched, report, total=len(new_handles)
                )
            LOGGER.info("Finished processing %s emails", report.processed)
            return report
        except ImapError as exc:
            LOGGER.error("Poll cycle aborted: %s", exc)
            raise
        finally:
            await asyncio.to_thread(mailbox.close)

    async def _process_message(
        self,
        mailbox: MailTransport,
        fetched: FetchedMessage,
        report: CycleReport,
        *,
        total: int,
    ) -> None:
        index = report.processed + 1
        LOGGER.info("Processing email %s/%s (UID %s)", index, total, fetched.uid)
        try:
            try:
                message = self._parser.parse(fetched.raw)
            except ParseError as exc:
                LOGGER.error("Error parsing email UID %s: %s", fetched.uid, exc)
                report.failed += 1
                return

            self._output(render_message(message, index))
            try:
                classification = await self._classifier.classify(
                    message.sender, message.subject, message.body
                )
            except ClassifierError as exc:
                LOGGER.error("Error classifying email UID %s: %s", fetched.uid, exc)
                report.failed += 1
                self._output(render_classification_error(exc))
            else:
                report.classified += 1
                self._output(render_classification(classification))

            if self._settings.mark_as_seen:
                try:
                    await asyncio.to_thread(mailbox.mark_seen, fetched.uid)
                except ImapError as exc:
                    LOGGER.error(
                        "Error marking email UID %s as read: %s", fetched.uid, exc
                    )
        finally:
            report.processed += 1
            self._ledger.add(fetched.uid)

    def _alert_for_manual_check(self, manual: bool) -> None:
        if manual:
            LOGGER.info("Playing test sound for manual check")
            self._notifier.alert()


__all__ = ["PollScheduler"]
