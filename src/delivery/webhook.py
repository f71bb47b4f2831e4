"""
Webhook Delivery Module

POSTs alert notifications as JSON. The body carries a Slack-compatible
`text` field next to the raw event type and payload.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class WebhookResult:
    """Result of webhook delivery. Only a 2xx response counts as success."""
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class WebhookDelivery:
    def __init__(self, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)

    def close(self):
        self.client.close()

    @staticmethod
    def build_body(event_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        pretty = json.dumps(payload, indent=4, ensure_ascii=False, default=str)
        title = f"{event_type[:1].upper()}{event_type[1:]}"
        return {
            "text": f"*KSEO {title}*\n```{pretty}```",
            "event_type": event_type,
            "payload": payload,
        }

    def send_alert(self, url: str, event_type: str, payload: Dict[str, Any]) -> WebhookResult:
        try:
            response = self.client.post(
                url,
                json=self.build_body(event_type, payload),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Webhook delivery to {url} failed: {e}")
            return WebhookResult(success=False, error=str(e))

        ok = 200 <= response.status_code < 300
        if not ok:
            logger.warning(f"Webhook {url} returned HTTP {response.status_code}")
        return WebhookResult(
            success=ok,
            status_code=response.status_code,
            error=None if ok else f"HTTP {response.status_code}",
        )
