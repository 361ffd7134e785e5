"""Plan-ready notifications.

The pipeline calls send_plan_ready() once, after the plan is committed.
Delivery itself happens elsewhere; a webhook URL hands the payload to it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..settings import settings

logger = logging.getLogger("nutriflow.notifications")


class NotificationError(Exception):
    pass


class NotificationDispatcher(ABC):
    @abstractmethod
    def send_plan_ready(self, payload: dict[str, Any]) -> bool:
        ...


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Default when no webhook is configured."""

    def send_plan_ready(self, payload: dict[str, Any]) -> bool:
        logger.info(
            f"[PLAN READY] '{payload.get('plan_name')}' for {payload.get('recipient_email') or 'no recipient'}"
        )
        return True


class WebhookNotificationDispatcher(NotificationDispatcher):
    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def send_plan_ready(self, payload: dict[str, Any]) -> bool:
        try:
            response = httpx.post(
                self.url,
                json={"event": "meal_plan.ready", **payload},
                timeout=self.timeout,
            )
        except httpx.ConnectError as e:
            raise NotificationError(f"Notification endpoint not reachable at {self.url}") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Notification request failed: {e}") from e

        if response.status_code >= 400:
            raise NotificationError(f"Notification endpoint returned {response.status_code}: {response.text[:200]}")
        return True


def build_dispatcher(url: Optional[str] = None) -> NotificationDispatcher:
    url = url or settings.notification_webhook_url
    if url:
        return WebhookNotificationDispatcher(url, timeout=settings.notification_timeout_sec)
    return LoggingNotificationDispatcher()
