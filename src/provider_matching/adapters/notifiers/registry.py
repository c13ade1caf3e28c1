"""
Fábrica do gateway de notificação: webhook quando configurado, log caso contrário.
"""
from functools import lru_cache

from django.conf import settings

from provider_matching.adapters.notifiers.base import (
    BaseNotificationGateway,
    LogNotificationGateway,
    WebhookNotificationGateway,
)


@lru_cache
def get_notification_gateway() -> BaseNotificationGateway:
    url = getattr(settings, "NOTIFICATION_WEBHOOK_URL", "")
    if url:
        return WebhookNotificationGateway(
            url=url,
            token=getattr(settings, "NOTIFICATION_WEBHOOK_TOKEN", "") or None,
            timeout=getattr(settings, "NOTIFICATION_TIMEOUT_SECONDS", None),
        )
    return LogNotificationGateway()
