from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.core.exceptions import IntegrationError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailService:
    """Email sending via Resend or SMTP. Raises when neither is configured."""

    def __init__(
        self,
        resend_api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if resend_api_key is None and settings.resend_api_key is not None:
            resend_api_key = settings.resend_api_key.get_secret_value()
        self.resend_api_key = resend_api_key or None
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = (
            settings.smtp_password.get_secret_value() if settings.smtp_password else None
        )
        self.default_from_email = settings.billing_from_email
        self.default_from_name = settings.billing_from_name
        self._transport = transport

    @property
    def smtp_configured(self) -> bool:
        return all([self.smtp_host, self.smtp_username, self.smtp_password])

    async def send_email(
        self,
        to: str,
        subject: str,
        html_content: str,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        from_email = from_email or self.default_from_email
        from_name = from_name or self.default_from_name
        if self.resend_api_key:
            return await self._send_via_resend(to, subject, html_content, from_email, from_name)
        if self.smtp_configured:
            return await self._send_via_smtp(to, subject, html_content, from_email, from_name)
        logger.warning("Email delivery not configured; dropping to=%s subject=%s", to, subject)
        raise IntegrationError("Email delivery is not configured: set RESEND_API_KEY or SMTP settings")

    async def _send_via_resend(
        self, to: str, subject: str, html_content: str, from_email: str, from_name: str
    ) -> Dict[str, Any]:
        payload = {
            "from": f"{from_name} <{from_email}>",
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        try:
            async with httpx.AsyncClient(timeout=20.0, transport=self._transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            raise IntegrationError(f"Resend send failed for {to}: {exc}") from exc
        except ValueError as exc:
            raise IntegrationError(f"Resend returned an unreadable reply for {to}: {exc}") from exc
        message_id = body.get("id") if isinstance(body, dict) else None
        return {"status": "sent", "message_id": message_id, "to": to}

    async def _send_via_smtp(
        self, to: str, subject: str, html_content: str, from_email: str, from_name: str
    ) -> Dict[str, Any]:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{from_name} <{from_email}>"
        message["To"] = to
        message.attach(MIMEText(html_content, "html"))
        try:
            await asyncio.to_thread(self._smtp_send, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise IntegrationError(f"SMTP send failed for {to}: {exc}") from exc
        return {"status": "sent", "to": to}

    def _smtp_send(self, message: MIMEMultipart) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(message)
