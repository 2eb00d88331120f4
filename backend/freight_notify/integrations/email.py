"""Email delivery through the SendGrid v3 API."""

from __future__ import annotations

import html
import logging
from typing import Any

import httpx

from ..errors import ErrorCategory, NotificationError

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def render_html(message: str) -> str:
    body = html.escape(message).replace("\n", "<br>")
    return (
        '<div style="font-family: Arial, sans-serif; padding: 20px;">'
        '<h2 style="color: #333;">Delivery Delay Notification</h2>'
        f'<p style="color: #666; line-height: 1.6;">{body}</p>'
        '<hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">'
        '<p style="color: #999; font-size: 12px;">'
        "This is an automated message from your delivery service.</p>"
        "</div>"
    )


class SendGridEmailSender:
    """Sends plain-text plus HTML notification emails."""

    def __init__(
        self,
        api_key: str | None,
        from_email: str | None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self._http_client = http_client
        self.timeout_seconds = timeout_seconds

    async def __call__(self, to: str, subject: str, body: str) -> None:
        await self.send(to, subject, body)

    def _missing_configuration(self) -> list[str]:
        missing: list[str] = []
        if not self.api_key:
            missing.append("SENDGRID_API_KEY")
        if not self.from_email:
            missing.append("SENDGRID_FROM_EMAIL")
        return missing

    async def send(self, to: str, subject: str, body: str) -> None:
        missing = self._missing_configuration()
        if missing:
            raise NotificationError(
                f"Missing SendGrid environment variables: {', '.join(missing)}",
                category=ErrorCategory.MISSING_CONFIGURATION,
            )
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": body},
                {"type": "text/html", "value": render_html(body)},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    SENDGRID_SEND_URL,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationError(
                f"Failed to send email: {exc}",
                category=ErrorCategory.TRANSPORT,
            ) from exc
        if response.status_code >= 400:
            raise NotificationError(
                f"Failed to send email: HTTP {response.status_code} {response.text[:200]}",
                category=ErrorCategory.TRANSPORT,
            )
        logger.info(
            "email sent to=%s status=%s",
            to,
            response.status_code,
            extra={"run_id": "system"},
        )
