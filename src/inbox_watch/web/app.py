"""FastAPI control surface for the mailbox monitor."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from inbox_watch.core import AppSettings, load_app_settings
from inbox_watch.core.container import (
    CLASSIFIER,
    NOTIFIER,
    SCHEDULER,
    ServiceContainer,
    build_container,
)
from inbox_watch.core.models import Classification
from inbox_watch.intelligence import OpenAIClassifier
from inbox_watch.monitor import PollScheduler, SoundNotifier

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_SENDER = "test@example.com"
DEFAULT_SAMPLE_SUBJECT = "Test Subject"
DEFAULT_SAMPLE_BODY = "This is a test email body."


class SampleEmail(BaseModel):
    """Optional email supplied to the classifier test endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str | None = Field(default=None, alias="from")
    subject: str | None = None
    body: str | None = None

    def is_empty(self) -> bool:
        """Return ``True`` when no field was supplied."""
        return not (self.sender or self.subject or self.body)


def create_app(
    settings: AppSettings | None = None,
    *,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Services are resolved eagerly so a missing API key fails here, before the
    server starts listening.
    """
    app_settings = settings or (
        container.settings if container is not None else load_app_settings()
    )
    services = container or build_container(app_settings)
    scheduler: PollScheduler = services.resolve(SCHEDULER)
    notifier: SoundNotifier = services.resolve(NOTIFIER)
    classifier: OpenAIClassifier = services.resolve(CLASSIFIER)
    subject = scheduler.criterion.subject

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if app_settings.monitor.autostart:
            LOGGER.info("Starting continuous email monitoring on startup")
            scheduler.start()
        try:
            yield
        finally:
            LOGGER.info("Shutting down - stopping email monitoring")
            await scheduler.aclose()
            await notifier.aclose()
            await classifier.aclose()

    app = FastAPI(title="Inbox Watch", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.scheduler = scheduler
    app.state.notifier = notifier
    app.state.classifier = classifier

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Hello World!"

    @app.post("/read-emails")
    async def read_emails(request: Request) -> dict[str, str]:
        try:
            await request.app.state.scheduler.run_cycle(manual=True)
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-except
            LOGGER.exception("Manual email check failed")
            return {"message": f"Error reading emails: {exc}"}
        return {"message": f'Successfully processed emails with subject: "{subject}"'}

    @app.post("/start-monitoring")
    async def start_monitoring(request: Request) -> dict[str, str]:
        request.app.state.scheduler.start()
        return {"message": "Email monitoring started"}

    @app.post("/stop-monitoring")
    async def stop_monitoring(request: Request) -> dict[str, str]:
        request.app.state.scheduler.stop()
        return {"message": "Email monitoring stopped"}

    @app.get("/monitoring-status")
    async def monitoring_status(request: Request) -> dict[str, Any]:
        current: PollScheduler = request.app.state.scheduler
        return {
            "message": "Email monitoring status",
            "isMonitoring": current.is_monitoring,
            "state": current.state.value,
        }

    @app.post("/test-sound")
    async def test_sound(request: Request) -> dict[str, str]:
        LOGGER.info("Testing notification sound...")
        request.app.state.notifier.alert()
        return {"message": "Test notification sound triggered"}

    @app.post("/test-openai")
    async def test_openai(
        request: Request,
        sample: SampleEmail | None = Body(default=None),  # noqa: B008
    ) -> dict[str, Any]:
        current: OpenAIClassifier = request.app.state.classifier
        try:
            if not await current.test_connection():
                return {"success": False, "message": "OpenAI connection test failed"}

            if sample is not None and not sample.is_empty():
                classification = await current.classify(
                    sample.sender or DEFAULT_SAMPLE_SENDER,
                    sample.subject or DEFAULT_SAMPLE_SUBJECT,
                    sample.body or DEFAULT_SAMPLE_BODY,
                )
                return {
                    "success": True,
                    "message": "OpenAI test successful",
                    "classification": _serialize_classification(classification),
                }
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-except
            LOGGER.error("Classifier test failed: %s", exc)
            return {"success": False, "message": f"OpenAI test failed: {exc}"}

        return {"success": True, "message": "OpenAI connection test successful"}

    return app


def _serialize_classification(classification: Classification) -> dict[str, Any]:
    return {
        "classification": classification.label.value,
        "confidence": classification.confidence,
        "reasoning": classification.reasoning,
        "indicators": {
            "systemIndicators": list(classification.system_indicators),
            "humanIndicators": list(classification.human_indicators),
        },
    }


__all__ = ["SampleEmail", "create_app"]
