from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import httpx
from django.test import SimpleTestCase, override_settings

from provider_matching.adapters.notifiers import registry
from provider_matching.adapters.notifiers.base import (
    EVENT_FAILED,
    EVENT_SCHEDULED,
    LogNotificationGateway,
    WebhookNotificationGateway,
)
from provider_matching.core.application.services.notification_dispatch import notify_safely
from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.value_objects import AppointmentStatus, ProviderType, SolicitationStatus


def appointment() -> AppointmentEntity:
    return AppointmentEntity(
        id=7,
        solicitation_id=3,
        provider_type=ProviderType.CLINIC,
        provider_id=11,
        scheduled_date=datetime(2025, 6, 3, 12, 0, tzinfo=timezone.utc),
        status=AppointmentStatus.SCHEDULED,
        price=Decimal("100.00"),
    )


class RecordingGateway(LogNotificationGateway):
    provider = "recording"

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, dict]] = []
        self.fail = fail

    def deliver(self, event, payload):
        if self.fail:
            raise ConnectionError("down")
        self.sent.append((event, payload))


class NotificationGatewayTests(SimpleTestCase):
    def test_payload_is_json_safe(self):
        gateway = RecordingGateway()

        gateway.notify_scheduled(appointment())

        event, payload = gateway.sent[0]
        self.assertEqual(event, EVENT_SCHEDULED)
        self.assertEqual(payload["provider_type"], "clinic")
        self.assertEqual(payload["status"], "scheduled")
        self.assertEqual(payload["price"], "100.00")
        self.assertEqual(payload["scheduled_date"], "2025-06-03T12:00:00+00:00")

    def test_failed_payload_carries_reason(self):
        gateway = RecordingGateway()
        solicitation = SolicitationEntity(
            id=3, patient_id=1, procedure_id=2, health_plan_id=4, status=SolicitationStatus.FAILED
        )

        gateway.notify_failed(solicitation, "Nenhum horário disponível")

        event, payload = gateway.sent[0]
        self.assertEqual(event, EVENT_FAILED)
        self.assertEqual(payload["reason"], "Nenhum horário disponível")

    def test_delivery_errors_are_swallowed(self):
        RecordingGateway(fail=True).notify_scheduled(appointment())

    def test_notify_safely_reports_failure(self):
        broken = MagicMock(side_effect=RuntimeError("boom"))

        self.assertFalse(notify_safely(broken, appointment(), solicitation_id=3))
        self.assertTrue(notify_safely(MagicMock(), appointment()))


class WebhookNotificationGatewayTests(SimpleTestCase):
    def test_posts_event_envelope_with_token(self):
        gateway = WebhookNotificationGateway("https://hooks.test/agendamento", token="s3cr3t", timeout=2)
        response = httpx.Response(200, request=httpx.Request("POST", "https://hooks.test/agendamento"))

        with patch("provider_matching.adapters.notifiers.base.httpx.post", return_value=response) as post:
            gateway.notify_scheduled(appointment())

        _, kwargs = post.call_args
        self.assertEqual(kwargs["json"]["event"], EVENT_SCHEDULED)
        self.assertEqual(kwargs["json"]["data"]["id"], 7)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer s3cr3t")
        self.assertEqual(kwargs["timeout"], 2)


class NotificationRegistryTests(SimpleTestCase):
    def tearDown(self):
        registry.get_notification_gateway.cache_clear()

    @override_settings(NOTIFICATION_WEBHOOK_URL="")
    def test_log_gateway_without_webhook(self):
        registry.get_notification_gateway.cache_clear()

        self.assertIsInstance(registry.get_notification_gateway(), LogNotificationGateway)

    @override_settings(NOTIFICATION_WEBHOOK_URL="https://hooks.test/x")
    def test_webhook_gateway_when_configured(self):
        registry.get_notification_gateway.cache_clear()

        self.assertIsInstance(registry.get_notification_gateway(), WebhookNotificationGateway)
