import logging

import requests

from carrier_audit import config
from carrier_audit.models import Notification

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Default notifier: writes the notification to the log and nothing else."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "[Notify] %s to %s | template=%s | data=%s",
            notification.type, notification.recipient, notification.template, notification.data,
        )


class WebhookNotifier(LoggingNotifier):
    """Logs, then POSTs the notification as JSON to a webhook (mail relay, Slack bridge...)."""

    def __init__(self, url: str, timeout: float = config.NOTIFICATION_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def send(self, notification: Notification) -> None:
        super().send(notification)
        resp = requests.post(self.url, json=notification.to_dict(), timeout=self.timeout)
        resp.raise_for_status()


def build_notifier():
    if config.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotifier(config.NOTIFICATION_WEBHOOK_URL)
    return LoggingNotifier()
