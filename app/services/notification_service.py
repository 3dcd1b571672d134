"""알림 서비스 — 요청 상태 변경 알림 발송.

Notification Service — Status-change notifications to request submitters.
The Notifier port is implemented by EmailNotifier (SMTP). The
NotificationDispatcher runs each notification as a detached asyncio task
with its own timeout, so delivery never blocks or fails a status update.
"""

import asyncio
import logging
from typing import Protocol
from uuid import UUID

from app.config import settings
from app.utils.email import send_email, smtp_configured

logger = logging.getLogger(__name__)

# 사람이 읽기 쉬운 표기 — Human-readable labels for email bodies
_CATEGORY_LABELS: dict[str, str] = {
    "StreetLight": "Street Light",
    "IllegalDumping": "Illegal Dumping",
    "SidewalkRepair": "Sidewalk Repair",
    "TreeMaintenance": "Tree Maintenance",
    "WaterLeak": "Water Leak",
}
_STATUS_LABELS: dict[str, str] = {"InProgress": "In Progress"}


def format_category(category: str) -> str:
    return _CATEGORY_LABELS.get(category, category)


def format_status(status: str) -> str:
    return _STATUS_LABELS.get(status, status)


class Notifier(Protocol):
    """상태 변경 알림 포트 — Status change notification port."""

    async def notify(
        self,
        contact: str,
        display_name: str,
        request_id: UUID,
        category: str,
        old_status: str,
        new_status: str,
    ) -> None: ...


class EmailNotifier:
    """SMTP 이메일 알림 — SMTP 미설정 시 경고 로그 후 생략.

    Sends a multipart (plain + HTML) status update email.
    """

    def build_message(
        self,
        display_name: str,
        request_id: UUID,
        category: str,
        old_status: str,
        new_status: str,
    ) -> tuple[str, str, str]:
        """(제목, HTML 본문, 텍스트 본문)을 생성합니다."""
        short_id = str(request_id)[:8]
        category_label = format_category(category)
        old_label = format_status(old_status)
        new_label = format_status(new_status)

        subject = f"Service Request Update - {category_label}"
        html = f"""
<div style='font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;'>
  <div style='background-color: #550C18; color: white; padding: 20px; text-align: center;'>
    <h1 style='margin: 0;'>{settings.SMTP_FROM_NAME}</h1>
  </div>
  <div style='padding: 30px; background-color: #f9f9f9;'>
    <h2 style='color: #550C18;'>Hello {display_name},</h2>
    <p>Your service request has been updated.</p>
    <div style='background-color: white; padding: 20px; border-radius: 8px; margin: 20px 0;'>
      <p><strong>Request ID:</strong> {short_id}...</p>
      <p><strong>Category:</strong> {category_label}</p>
      <p><strong>Previous Status:</strong> <span style='color: #666;'>{old_label}</span></p>
      <p><strong>New Status:</strong> <span style='color: #E63946; font-weight: bold;'>{new_label}</span></p>
    </div>
    <p>You can view your request details by logging into the
      <a href='{settings.PORTAL_URL}' style='color: #A37C40;'>{settings.SMTP_FROM_NAME}</a>.</p>
    <p style='color: #666; font-size: 14px; margin-top: 30px;'>Thank you for helping improve our community.</p>
  </div>
</div>
"""
        text = (
            f"Hello {display_name},\n\n"
            "Your service request has been updated.\n\n"
            f"Request ID: {short_id}...\n"
            f"Category: {category_label}\n"
            f"Previous Status: {old_label}\n"
            f"New Status: {new_label}\n\n"
            f"You can view your request details by logging into {settings.PORTAL_URL}.\n\n"
            "Thank you for helping improve our community.\n"
        )
        return subject, html, text

    async def notify(
        self,
        contact: str,
        display_name: str,
        request_id: UUID,
        category: str,
        old_status: str,
        new_status: str,
    ) -> None:
        if not smtp_configured():
            logger.warning("SMTP not configured. Skipping email notification.")
            return

        subject, html, text = self.build_message(
            display_name, request_id, category, old_status, new_status
        )
        await send_email(contact, subject, html, text, to_name=display_name)
        logger.info("Status update email sent to %s for request %s", contact, request_id)


class NotificationDispatcher:
    """알림 비동기 발송기 — fire-and-forget.

    Runs each notification as a detached task bounded by a timeout.
    Failures and timeouts are logged and swallowed at this boundary.
    Task references are held until completion so they are not garbage
    collected mid-flight; drain() awaits whatever is still pending.

    Attributes:
        notifier: 실제 발송 구현체 (Notifier implementation)
        timeout: 알림 1건당 제한 시간(초) (Per-notification timeout in seconds)
    """

    def __init__(self, notifier: Notifier, timeout: float | None = None) -> None:
        self.notifier: Notifier = notifier
        self.timeout: float = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS
        self._pending: set[asyncio.Task] = set()

    def dispatch(
        self,
        contact: str,
        display_name: str,
        request_id: UUID,
        category: str,
        old_status: str,
        new_status: str,
    ) -> asyncio.Task:
        """알림 태스크를 생성하고 즉시 반환합니다."""
        task = asyncio.create_task(
            self._run(contact, display_name, request_id, category, old_status, new_status)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(
        self,
        contact: str,
        display_name: str,
        request_id: UUID,
        category: str,
        old_status: str,
        new_status: str,
    ) -> None:
        try:
            await asyncio.wait_for(
                self.notifier.notify(
                    contact, display_name, request_id, category, old_status, new_status
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Status notification to %s for request %s timed out after %ss",
                contact, request_id, self.timeout,
            )
        except Exception:
            logger.exception(
                "Failed to send status notification to %s for request %s",
                contact, request_id,
            )

    async def drain(self) -> None:
        """대기 중인 알림이 모두 끝날 때까지 기다립니다 (종료 시/테스트용)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


notification_dispatcher: NotificationDispatcher = NotificationDispatcher(EmailNotifier())
