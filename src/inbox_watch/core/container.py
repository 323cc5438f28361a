"""Service container wiring the monitoring pipeline together."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from .config import AppSettings

T = TypeVar("T")

PARSER = "parser"
LEDGER = "ledger"
CLASSIFIER = "classifier"
NOTIFIER = "notifier"
MAILBOX_FACTORY = "mailbox_factory"
SCHEDULER = "scheduler"


class ServiceContainer:
    """Minimal dependency container with lazy singleton semantics."""

    def __init__(self, settings: AppSettings) -> None:
        """Initialise container storage for the given settings."""
        self.settings = settings
        self._factories: dict[str, Callable[[ServiceContainer], Any]] = {}
        self._instances: dict[str, Any] = {}

    def register(self, key: str, factory: Callable[[ServiceContainer], T]) -> None:
        """Register a factory under a given key, replacing any cached instance."""
        self._factories[key] = factory
        self._instances.pop(key, None)

    def provide(self, key: str, instance: Any) -> None:
        """Register an already constructed instance."""
        self._factories[key] = lambda _container: instance
        self._instances[key] = instance

    def resolve(self, key: str) -> Any:
        """Resolve a dependency by key, invoking its factory once."""
        if key in self._instances:
            return self._instances[key]
        if key not in self._factories:
            msg = f"Service '{key}' is not registered"
            raise KeyError(msg)
        instance = self._factories[key](self)
        self._instances[key] = instance
        return instance


def build_container(settings: AppSettings) -> ServiceContainer:
    """Register the default production services for ``settings``."""
    # Imported lazily so the core package stays free of import cycles.
    from inbox_watch.ingestion import DedupLedger, EmailParser
    from inbox_watch.intelligence import OpenAIClassifier
    from inbox_watch.monitor import PollScheduler, SoundNotifier
    from inbox_watch.transport import ImapClient

    container = ServiceContainer(settings)
    container.register(PARSER, lambda _c: EmailParser())
    container.register(LEDGER, lambda _c: DedupLedger())
    container.register(CLASSIFIER, lambda c: OpenAIClassifier(c.settings.classifier))
    container.register(NOTIFIER, lambda c: SoundNotifier(c.settings.notifier))
    container.register(
        MAILBOX_FACTORY, lambda c: lambda: ImapClient(c.settings.imap)
    )
    container.register(
        SCHEDULER,
        lambda c: PollScheduler(
            c.settings.monitor,
            mailbox_factory=c.resolve(MAILBOX_FACTORY),
            parser=c.resolve(PARSER),
            classifier=c.resolve(CLASSIFIER),
            notifier=c.resolve(NOTIFIER),
            ledger=c.resolve(LEDGER),
        ),
    )
    return container


__all__ = [
    "CLASSIFIER",
    "LEDGER",
    "MAILBOX_FACTORY",
    "NOTIFIER",
    "PARSER",
    "SCHEDULER",
    "ServiceContainer",
    "build_container",
]
