"""
Email Delivery Module

Sends alert notifications via Resend email service.
"""

import html
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import resend

from src.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Result of email delivery."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def alert_subject(event_type: str) -> str:
    """'[KSEO] Decay alert' for event_type 'decay'."""
    return f"[KSEO] {event_type[:1].upper()}{event_type[1:]} alert"


class EmailDelivery:
    """
    Email delivery service using Resend.

    Handles:
    - Alert notifications for detector events
    """

    DEFAULT_FROM_NAME = "KSEO Alerts"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize email delivery.

        Args:
            api_key: Resend API key (defaults to RESEND_API_KEY)
            from_email: Sender email address (defaults to FROM_EMAIL)
        """
        settings = settings or get_settings()
        self.api_key = api_key or settings.RESEND_API_KEY
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set - email delivery disabled")

        self.from_email = from_email or settings.FROM_EMAIL

        if self.api_key:
            resend.api_key = self.api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send_alert(self, to_email: str, event_type: str, payload: Dict[str, Any]) -> EmailResult:
        """
        Send one alert email.

        Args:
            to_email: Recipient email
            event_type: Event type, e.g. "decay"
            payload: Event details, rendered as JSON

        Returns:
            EmailResult indicating success/failure
        """
        if not self.api_key:
            return EmailResult(
                success=False,
                error="Email delivery not configured (missing API key)"
            )

        body = json.dumps(payload, indent=4, ensure_ascii=False, default=str)
        text_content = f"Type: {event_type}\n\n{body}"

        try:
            params = {
                "from": f"{self.DEFAULT_FROM_NAME} <{self.from_email}>",
                "to": [to_email],
                "subject": alert_subject(event_type),
                "text": text_content,
                "html": self._get_alert_email_html(event_type, body),
            }

            response = resend.Emails.send(params)

            logger.info(f"Alert email sent to {to_email}: {response.get('id', 'unknown')}")

            return EmailResult(
                success=True,
                message_id=response.get("id"),
            )

        except Exception as e:
            logger.error(f"Alert email delivery failed: {e}")
            return EmailResult(
                success=False,
                error=str(e),
            )

    def _get_alert_email_html(self, event_type: str, body: str) -> str:
        """Generate HTML for an alert email."""
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: #3f37c9; color: white; padding: 20px; text-align: center; }}
                pre {{ background: #f8f9fa; padding: 16px; border-radius: 6px; white-space: pre-wrap; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>{html.escape(alert_subject(event_type))}</h1>
                </div>
                <p>Type: <strong>{html.escape(event_type)}</strong></p>
                <pre>{html.escape(body)}</pre>
            </div>
        </body>
        </html>
        """
