import time
from abc import abstractmethod
from http import HTTPStatus
from typing import Any

import backoff
import httpx
import structlog

from provider_matching.adapters.observability.metrics import (
    NOTIFIER_FAILURE,
    NOTIFIER_LATENCY,
    NOTIFIER_SUCCESS,
)
from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.services.notification_gateway import NotificationGateway

logger = structlog.get_logger(__name__)

EVENT_SCHEDULED = "appointment.scheduled"
EVENT_FAILED = "solicitation.failed"
EVENT_EXCEPTION_PENDING = "scheduling_exception.pending"
EVENT_EXCEPTION_RESOLVED = "scheduling_exception.resolved"


def _json_safe(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if hasattr(value, "isoformat"):
            out[key] = value.isoformat()
        elif value is None or isinstance(value, bool | int | float | str):
            out[key] = value
        else:
            out[key] = str(value)
    return out


class BaseNotificationGateway(NotificationGateway):
    """
    Converte os quatro eventos de desfecho em payloads e delega a
    entrega para `deliver`. Erros de entrega são logados, nunca propagados.
    """

    provider = "base"

    def notify_scheduled(self, appointment: AppointmentEntity) -> None:
        self._emit(EVENT_SCHEDULED, _json_safe(appointment.to_dict()))

    def notify_failed(self, solicitation: SolicitationEntity, reason: str) -> None:
        payload = _json_safe(solicitation.to_dict())
        payload["reason"] = reason
        self._emit(EVENT_FAILED, payload)

    def notify_exception_pending(self, exception: SchedulingExceptionEntity) -> None:
        self._emit(EVENT_EXCEPTION_PENDING, _json_safe(exception.to_dict()))

    def notify_exception_resolved(self, exception: SchedulingExceptionEntity) -> None:
        self._emit(EVENT_EXCEPTION_RESOLVED, _json_safe(exception.to_dict()))

    def _emit(self, event: str, payload: dict[str, Any]) -> None:
        start = time.perf_counter()
        try:
            self.deliver(event, payload)
            NOTIFIER_SUCCESS.labels(self.provider, event).inc()
        except Exception as exc:  # noqa: BLE001
            NOTIFIER_FAILURE.labels(self.provider, event).inc()
            logger.error("notifier.delivery_failed", provider=self.provider, notify_event=event, error=str(exc))
        finally:
            NOTIFIER_LATENCY.labels(self.provider, event).observe(time.perf_counter() - start)

    @abstractmethod
    def deliver(self, event: str, payload: dict[str, Any]) -> None:
        ...


class WebhookNotificationGateway(BaseNotificationGateway):
    """POST JSON `{event, data}` para um webhook interno de notificações."""

    provider = "webhook"
    DEFAULT_TIMEOUT = 10

    def __init__(self, url: str, token: str | None = None, timeout: float | None = None) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @backoff.on_exception(backoff.expo, (httpx.TimeoutException, httpx.HTTPError),
                          max_tries=3, jitter=None)
    def _request(self, body: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = httpx.post(self.url, json=body, headers=headers, timeout=self.timeout)
        if resp.status_code >= HTTPStatus.BAD_REQUEST:
            raise httpx.HTTPStatusError("Bad status", request=resp.request, response=resp)
        return resp

    def deliver(self, event: str, payload: dict[str, Any]) -> None:
        self._request({"event": event, "data": payload})
        logger.info("notifier.webhook_sent", notify_event=event, url=self.url)


class LogNotificationGateway(BaseNotificationGateway):
    """Sem webhook configurado: eventos vão apenas para o log estruturado."""

    provider = "log"

    def deliver(self, event: str, payload: dict[str, Any]) -> None:
        logger.info("notifier.event", notify_event=event, **payload)
