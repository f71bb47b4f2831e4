"""
Alert Fan-Out

Sends detector findings to the configured channels:
- email (Resend) when ALERT_EMAIL_ENABLED and ALERT_EMAIL_TO are set
- webhook (JSON POST) when ALERT_WEBHOOK_URL is set

Each (type, url, keyword, primary_url) combination alerts at most once per
24 hours. The check is best effort: two sends racing on the same key can
both go out. Channels are independent, and every attempt is recorded as
an `alert_sent` event.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from src.cache.base import CacheStore
from src.cache.config import CacheTTL
from src.database.repository import EventStore, StorageError
from src.utils.config import Settings, get_settings
from .email import EmailDelivery
from .webhook import WebhookDelivery

logger = logging.getLogger(__name__)

ALERT_EVENT = "alert_sent"
RECENT_SCAN_LIMIT = 100


@dataclass
class AlertOutcome:
    """What send() did. `channels` maps channel name to delivery success."""
    event_type: str
    skipped: bool = False
    channels: Dict[str, bool] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return any(self.channels.values())


def idempotency_key(event_type: str, payload: Dict[str, Any]) -> str:
    identity = json.dumps(
        [payload.get("url") or "", payload.get("keyword") or "", payload.get("primary_url") or ""],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return f"alert:{event_type}:{hashlib.md5(identity.encode('utf-8')).hexdigest()}"


class AlertDispatcher:
    """
    Usage:
        alerts = AlertDispatcher(EventStore(), get_cache_store())
        alerts.send("decay", {"url": "https://example.com/a", ...})
        alerts.send_for_recent("cannibalization")
    """

    def __init__(
        self,
        events: EventStore,
        cache: CacheStore,
        settings: Optional[Settings] = None,
        email: Optional[EmailDelivery] = None,
        webhook: Optional[WebhookDelivery] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.events = events
        self.cache = cache
        self.settings = settings or get_settings()
        self.email_enabled = bool(self.settings.ALERT_EMAIL_ENABLED)
        self.email_to = self.settings.ALERT_EMAIL_TO
        self.webhook_url = self.settings.ALERT_WEBHOOK_URL
        self.email = email
        self.webhook = webhook
        self._clock = clock or time.time

        if self.email_enabled and self.email is None:
            self.email = EmailDelivery(settings=self.settings)
        if self.webhook_url and self.webhook is None:
            self.webhook = WebhookDelivery(timeout=self.settings.HTTP_TIMEOUT_SECONDS)

    def send(self, event_type: str, payload: Dict[str, Any]) -> AlertOutcome:
        outcome = AlertOutcome(event_type=event_type)

        key = idempotency_key(event_type, payload)
        if self.cache.get(key):
            logger.debug(f"Alert {key} already sent within 24h")
            outcome.skipped = True
            return outcome
        self.cache.set(key, 1, CacheTTL.ALERT_IDEMPOTENCY)

        if self.email_enabled:
            if self.email_to:
                ok = self.email.send_alert(self.email_to, event_type, payload).success
            else:
                logger.warning("Email alerts enabled but ALERT_EMAIL_TO is not set")
                ok = False
            self._record("email", event_type, ok)
            outcome.channels["email"] = ok

        if self.webhook_url:
            ok = self.webhook.send_alert(self.webhook_url, event_type, payload).success
            self._record("webhook", event_type, ok)
            outcome.channels["webhook"] = ok

        return outcome

    def _record(self, channel: str, event_type: str, ok: bool) -> None:
        self.events.log_event(
            ALERT_EVENT,
            details={"channel": channel, "event_type": event_type, "ok": ok},
        )

    def send_for_recent(self, event_type: str, minutes: int = 5) -> int:
        """
        Alert for events of event_type logged within the last `minutes`.

        Only the newest 100 events of that type are considered.
        Returns the number of sends that were not suppressed.
        """
        try:
            recent = self.events.list_events(event_type=event_type, limit=RECENT_SCAN_LIMIT)
        except StorageError as e:
            logger.error(f"Could not load recent {event_type} events: {e}")
            return 0

        now = datetime.fromtimestamp(self._clock(), timezone.utc).replace(tzinfo=None)
        cutoff = now - timedelta(minutes=minutes)
        sent = 0
        for event in recent:
            if event.created_at < cutoff:
                continue
            if not self.send(event_type, event.details).skipped:
                sent += 1
        return sent
