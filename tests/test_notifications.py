"""알림 테스트 — 발송기 격리, 타임아웃, 이메일 본문.

Notification tests — dispatcher failure isolation and timeout, the
human-readable labels, and the SMTP email notifier.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.services.notification_service import (
    EmailNotifier,
    NotificationDispatcher,
    format_category,
    format_status,
)
from tests.fakes import RecordingNotifier

REQUEST_ID = uuid4()
ARGS = dict(
    contact="jane@example.com",
    display_name="Jane Doe",
    request_id=REQUEST_ID,
    category="IllegalDumping",
    old_status="Open",
    new_status="InProgress",
)


class TestLabels:

    @pytest.mark.parametrize("raw, label", [
        ("StreetLight", "Street Light"),
        ("IllegalDumping", "Illegal Dumping"),
        ("SidewalkRepair", "Sidewalk Repair"),
        ("TreeMaintenance", "Tree Maintenance"),
        ("WaterLeak", "Water Leak"),
        ("Pothole", "Pothole"),
        ("Other", "Other"),
    ])
    def test_format_category(self, raw, label):
        assert format_category(raw) == label

    @pytest.mark.parametrize("raw, label", [
        ("InProgress", "In Progress"),
        ("Open", "Open"),
        ("Closed", "Closed"),
    ])
    def test_format_status(self, raw, label):
        assert format_status(raw) == label


class TestNotificationDispatcher:

    async def test_dispatch_runs_in_background(self):
        notifier = RecordingNotifier(delay=0.05)
        dispatcher = NotificationDispatcher(notifier, timeout=1.0)

        task = dispatcher.dispatch(**ARGS)
        assert notifier.calls == []

        await dispatcher.drain()
        assert task.done()
        assert notifier.calls[0]["request_id"] == REQUEST_ID

    async def test_failure_is_logged_not_raised(self, caplog):
        dispatcher = NotificationDispatcher(RecordingNotifier(fail=True), timeout=1.0)

        with caplog.at_level(logging.ERROR, logger="app.services.notification_service"):
            task = dispatcher.dispatch(**ARGS)
            await dispatcher.drain()

        assert task.exception() is None
        assert "Failed to send status notification" in caplog.text

    async def test_timeout_is_logged(self, caplog):
        dispatcher = NotificationDispatcher(RecordingNotifier(delay=1.0), timeout=0.01)

        with caplog.at_level(logging.ERROR, logger="app.services.notification_service"):
            task = dispatcher.dispatch(**ARGS)
            await dispatcher.drain()

        assert task.exception() is None
        assert "timed out" in caplog.text

    async def test_pending_set_cleared_after_completion(self):
        dispatcher = NotificationDispatcher(RecordingNotifier(), timeout=1.0)
        dispatcher.dispatch(**ARGS)
        dispatcher.dispatch(**ARGS)

        await dispatcher.drain()
        await asyncio.sleep(0)
        assert dispatcher._pending == set()

    async def test_drain_without_pending(self):
        await NotificationDispatcher(RecordingNotifier()).drain()


class TestEmailNotifier:

    def test_build_message(self):
        subject, html, text = EmailNotifier().build_message(
            "Jane Doe", REQUEST_ID, "StreetLight", "Open", "InProgress",
        )
        short_id = str(REQUEST_ID)[:8]

        assert subject == "Service Request Update - Street Light"
        assert "Hello Jane Doe" in html
        assert f"{short_id}..." in html
        assert "In Progress" in html
        assert "Previous Status: Open" in text
        assert "New Status: In Progress" in text
        assert str(REQUEST_ID) not in text

    async def test_skips_when_smtp_not_configured(self, caplog):
        with patch("app.services.notification_service.smtp_configured", return_value=False), \
             patch("app.services.notification_service.send_email", new=AsyncMock()) as send:
            with caplog.at_level(logging.WARNING, logger="app.services.notification_service"):
                await EmailNotifier().notify(**ARGS)

        send.assert_not_awaited()
        assert "SMTP not configured" in caplog.text

    async def test_sends_multipart_email(self):
        with patch("app.services.notification_service.smtp_configured", return_value=True), \
             patch("app.services.notification_service.send_email", new=AsyncMock()) as send:
            await EmailNotifier().notify(**ARGS)

        send.assert_awaited_once()
        args, kwargs = send.call_args
        assert args[0] == "jane@example.com"
        assert args[1] == "Service Request Update - Illegal Dumping"
        assert "Illegal Dumping" in args[3]
        assert kwargs["to_name"] == "Jane Doe"

    async def test_send_email_uses_smtp_settings(self):
        from app.utils import email as email_utils

        with patch.object(email_utils.settings, "SMTP_HOST", "smtp.city.gov"), \
             patch.object(email_utils.settings, "SMTP_USE_SSL", False), \
             patch("app.utils.email.aiosmtplib.send", new=AsyncMock()) as smtp_send:
            await email_utils.send_email("a@b.com", "Subject", "<p>hi</p>", "hi", to_name="A B")

        message = smtp_send.call_args.args[0]
        kwargs = smtp_send.call_args.kwargs
        assert message["To"] == "A B <a@b.com>"
        assert message["Subject"] == "Subject"
        assert kwargs["hostname"] == "smtp.city.gov"
        assert kwargs["start_tls"] is True
        assert kwargs["use_tls"] is False
