"""
Delivery Module

Outbound notifications for detector findings: email via Resend and a
JSON webhook, fanned out by AlertDispatcher.
"""

from .email import EmailDelivery, EmailResult, alert_subject
from .webhook import WebhookDelivery, WebhookResult
from .alerts import AlertDispatcher, AlertOutcome, idempotency_key

__all__ = [
    "EmailDelivery",
    "EmailResult",
    "alert_subject",
    "WebhookDelivery",
    "WebhookResult",
    "AlertDispatcher",
    "AlertOutcome",
    "idempotency_key",
]
