"""
E-mail delivery for dashboard alerts.

This module sends NotificationRequests over SMTP. Delivery is best effort:
failures are logged and tracked, never retried and never raised to callers
of dispatch_notifications.
"""
import os
import smtplib
from email.message import EmailMessage
from typing import Iterable, Optional

from dotenv import load_dotenv

from jmcc_dashboard.schemas.alerts import NotificationRequest
from jmcc_dashboard.services.alert_engine import alert_engine
from jmcc_dashboard.services.error_handler import error_handler

load_dotenv()

SMTP_HOST = os.getenv("SMTP_HOST", "smtp.office365.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASS = os.getenv("EMAIL_PASS")


class EmailNotificationSender:
    """Sends notifications through an SMTP relay with STARTTLS."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: Optional[str] = EMAIL_USER,
        password: Optional[str] = EMAIL_PASS,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def build_message(self, request: NotificationRequest) -> EmailMessage:
        """Build the e-mail for a notification request."""
        msg = EmailMessage()
        msg["Subject"] = request.subject
        msg["From"] = self.username or ""
        msg["To"] = ", ".join(sorted(request.recipients))
        if request.is_markup:
            msg.set_content("This alert is best viewed in an HTML capable mail client.")
            msg.add_alternative(request.body, subtype="html")
        else:
            msg.set_content(request.body)
        return msg

    def send(self, request: NotificationRequest) -> None:
        """Deliver one notification. Raises on transport errors."""
        if not request.recipients:
            raise ValueError(f"Notification '{request.rule}' has no recipients")
        if not (self.username and self.password):
            raise RuntimeError("SMTP is not configured. Please set EMAIL_USER and EMAIL_PASS.")

        msg = self.build_message(request)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.username, self.password)
            server.send_message(msg)
        print(f"[email] Sent '{request.subject}' to {len(request.recipients)} recipient(s)")


def dispatch_notifications(requests: Iterable[NotificationRequest], sender: EmailNotificationSender) -> int:
    """
    Send every request once.

    Args:
        requests: Notifications produced by the alert engine
        sender: Transport used for delivery

    Returns:
        Number of notifications delivered
    """
    sent = 0
    for request in requests:
        try:
            sender.send(request)
            sent += 1
        except Exception as e:
            error_handler.track_error("alert_delivery", e, details=request.rule)
    return sent


def send_email(message: str, sender: Optional[EmailNotificationSender] = None) -> None:
    """Send an ad-hoc dashboard message to the alert distribution list."""
    sender = sender or EmailNotificationSender()
    request = NotificationRequest(
        rule="manual",
        recipients=alert_engine.recipients,
        subject=alert_engine.subject_prefix,
        body=message,
    )
    sender.send(request)
