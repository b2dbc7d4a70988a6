"""
Mindweave email delivery

SMTP delivery for digest emails. Configuration comes from the environment:
SMTP_HOST, SMTP_PORT (default 587), SMTP_USER, SMTP_PASSWORD,
SMTP_FROM_EMAIL and SMTP_FROM_NAME (default "Mindweave").
"""

from __future__ import annotations

import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import Any

from bs4 import BeautifulSoup

from mindweave.observability.logging import get_logger
from mindweave.utils.redaction import redact_email

logger = get_logger(__name__)


def html_to_plaintext(html: str) -> str:
    """Plaintext alternative for an HTML body, one block per line."""
    soup = BeautifulSoup(html, "html.parser")
    lines = (line.strip() for line in soup.get_text("\n").splitlines())
    return "\n".join(line for line in lines if line)


class EmailDelivery:
    """Sends HTML email over SMTP with STARTTLS."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        from_email: str | None = None,
        from_name: str = "Mindweave",
    ):
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = smtp_user or os.getenv("SMTP_USER")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD")
        self.from_email = from_email or os.getenv("SMTP_FROM_EMAIL", self.smtp_user)
        self.from_name = os.getenv("SMTP_FROM_NAME", from_name)
        self.enabled = all([self.smtp_host, self.smtp_user, self.smtp_password, self.from_email])
        if not self.enabled:
            logger.warning("SMTP not fully configured. Set SMTP_* environment variables.")

    def build_message(self, to_email: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg["Date"] = formatdate(localtime=False)
        msg.attach(MIMEText(html_to_plaintext(html), "plain"))
        msg.attach(MIMEText(html, "html"))
        return msg

    def send_html(self, to_email: str, subject: str, html: str) -> bool:
        """
        Send one email.

        Returns:
            True if the server accepted it, False if SMTP is not configured or
            the send failed
        """
        if not self.enabled:
            logger.error("SMTP delivery not enabled. Configure SMTP_* environment variables.")
            return False

        msg = self.build_message(to_email, subject, html)
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", redact_email(to_email), e)
            return False

        logger.info("Email sent to %s", redact_email(to_email))
        return True

    def get_config_status(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_password_set": bool(self.smtp_password),
            "from_email": self.from_email,
        }


_delivery: EmailDelivery | None = None


def get_delivery() -> EmailDelivery:
    global _delivery
    if _delivery is None:
        _delivery = EmailDelivery()
    return _delivery


def set_delivery(delivery: EmailDelivery | None) -> None:
    """Replace the shared delivery (None rebuilds it from the environment)."""
    global _delivery
    _delivery = delivery
