"""
Pontos de entrada reais: container de DI, fachada CQRS, tasks Celery,
comandos de gerenciamento e endpoint de métricas.
"""
from __future__ import annotations

from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.conf import settings
from django.core.cache import cache
from django.core.management import CommandError, call_command
from django.test import TestCase
from django.utils import timezone

from agendamento_api.tasks import (
    requeue_stale_processing_task,
    schedule_pending_solicitations_task,
    schedule_solicitation_task,
)
from plugins.django_interface.models import Appointment, PricingContract, Solicitation, User
from provider_matching.adapters.config import composition_root
from provider_matching.core.domain.entities.scheduling_config import BalancedWeights
from tests.helpers.builders import make_catalog, make_clinic, make_contract, make_solicitation


class SchedulingEntrypointTests(TestCase):
    def setUp(self):
        cache.clear()
        self.container = composition_root.container
        self.facade = self.container.scheduling_facade_service()
        self.config_service = self.container.scheduling_config_service()
        self.config_service.set_automatic_scheduling(True)

        self.plan, self.procedure = make_catalog()
        self.cheap = make_clinic("Clínica Econômica", lat=-22.40, lng=-49.20)
        self.near = make_clinic("Clínica Vizinha", lat=-22.33, lng=-49.08)
        make_contract(self.cheap, self.plan, self.procedure, "80.00")
        make_contract(self.near, self.plan, self.procedure, "100.00")
        # sem janela preferida: busca a partir de agora (relógio real)
        self.solicitation = make_solicitation(
            self.plan, self.procedure, preferred_date_start=None, preferred_date_end=None
        )

    # ───────────────────────── fachada ───────────────────────── #

    def test_facade_schedules_through_command_bus(self):
        outcome = self.facade.schedule(self.solicitation.id)

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.status, "done")
        self.assertGreater(outcome.appointment.scheduled_date, timezone.now())
        self.assertTrue(Appointment.objects.filter(solicitation=self.solicitation).exists())

    def test_ranked_candidates_preview_has_no_side_effects(self):
        ranked = self.facade.ranked_candidates(self.solicitation.id)

        self.assertEqual([c.provider_id for c in ranked], [self.near.id, self.cheap.id])
        self.assertEqual(ranked[0].position, 1)
        self.assertIsNotNone(ranked[0].score)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.PENDING)

    def test_ranked_candidates_with_explicit_policy(self):
        ranked = self.facade.ranked_candidates(self.solicitation.id, priority="cost")

        self.assertEqual(ranked[0].provider_id, self.cheap.id)

    def test_preview_uses_weights_changed_after_startup(self):
        self.config_service.set_balanced_weights(BalancedWeights(price=1.0, distance=0.0, load=0.0))

        ranked = self.facade.ranked_candidates(self.solicitation.id)

        self.assertEqual([c.provider_id for c in ranked], [self.cheap.id, self.near.id])

    def test_container_setup_does_not_query_database(self):
        previous = composition_root.container
        composition_root.container = None
        try:
            with self.assertNumQueries(0):
                container = composition_root.setup_di_container_from_settings(settings)
        finally:
            composition_root.container = previous

        self.assertIsNotNone(container.scheduling_facade_service())

    def test_get_solicitation(self):
        self.assertEqual(self.facade.get_solicitation(self.solicitation.id).id, self.solicitation.id)
        self.assertIsNone(self.facade.get_solicitation(999_999))

    # ───────────────────────── lote / watchdog ───────────────────────── #

    def test_batch_returns_nothing_when_disabled(self):
        self.config_service.set_automatic_scheduling(False)

        self.assertEqual(self.container.batch_scheduling_service().pending_ids(), [])
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.PENDING)

    def test_stale_processing_is_listed(self):
        Solicitation.objects.filter(pk=self.solicitation.pk).update(
            status=Solicitation.Status.PROCESSING,
            processing_started_at=timezone.now() - timedelta(hours=2),
        )
        fresh = make_solicitation(
            self.plan, self.procedure,
            status=Solicitation.Status.PROCESSING,
            processing_started_at=timezone.now(),
        )

        stale = self.container.batch_scheduling_service().stale_ids()

        self.assertEqual(stale, [self.solicitation.id])
        self.assertNotIn(fresh.id, stale)

    def test_stale_processing_is_left_alone_when_disabled(self):
        Solicitation.objects.filter(pk=self.solicitation.pk).update(
            status=Solicitation.Status.PROCESSING,
            processing_started_at=timezone.now() - timedelta(hours=2),
        )
        self.config_service.set_automatic_scheduling(False)

        self.assertEqual(self.container.batch_scheduling_service().stale_ids(), [])
        with patch.object(schedule_solicitation_task, "delay") as delay:
            self.assertEqual(requeue_stale_processing_task(), 0)
        delay.assert_not_called()
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.PROCESSING)

    # ───────────────────────── Celery ───────────────────────── #

    def test_schedule_task_returns_outcome_summary(self):
        result = schedule_solicitation_task.apply(args=[self.solicitation.id]).get()

        self.assertEqual(result["status"], "done")
        self.assertEqual(result["reason"], "scheduled")
        self.assertFalse(result["duplicate"])

    def test_pending_task_enqueues_each_solicitation(self):
        with patch.object(schedule_solicitation_task, "delay") as delay:
            total = schedule_pending_solicitations_task()

        self.assertEqual(total, 1)
        delay.assert_called_once_with(self.solicitation.id)

    def test_stale_task_requeues(self):
        Solicitation.objects.filter(pk=self.solicitation.pk).update(
            status=Solicitation.Status.PROCESSING,
            processing_started_at=timezone.now() - timedelta(hours=2),
        )

        with patch.object(schedule_solicitation_task, "delay") as delay:
            total = requeue_stale_processing_task()

        self.assertEqual(total, 1)
        delay.assert_called_once_with(self.solicitation.id)

    # ───────────────────────── management commands ───────────────────────── #

    def test_command_single_solicitation(self):
        out = StringIO()

        call_command("run_automatic_scheduling", "--solicitation-id", str(self.solicitation.id), stdout=out)

        self.assertIn("done (scheduled)", out.getvalue())

    def test_command_batch(self):
        out = StringIO()

        call_command("run_automatic_scheduling", stdout=out)

        self.assertIn("scheduled=1", out.getvalue())
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.SCHEDULED)

    def test_command_batch_when_disabled(self):
        self.config_service.set_automatic_scheduling(False)
        out = StringIO()

        call_command("run_automatic_scheduling", stdout=out)

        self.assertIn("Nenhuma solicitação", out.getvalue())

    def test_settings_command(self):
        out = StringIO()

        call_command("scheduling_settings", "--priority", "cost", "--min-days", "2", stdout=out)

        self.assertIn("priority=cost", out.getvalue())
        self.assertIn("min_days_ahead=2", out.getvalue())
        with self.assertRaises(CommandError):
            call_command("scheduling_settings", "--priority", "fastest", stdout=StringIO())

    # ───────────────────────── métricas ───────────────────────── #

    def test_metrics_endpoint(self):
        self.facade.schedule(self.solicitation.id)

        response = self.client.get("/metrics/")

        self.assertEqual(response.status_code, 200)
        self.assertIn(b"scheduling_attempts_total", response.content)

    def test_seed_command_is_idempotent(self):
        call_command("seed_scheduling", stdout=StringIO())
        call_command("seed_scheduling", stdout=StringIO())

        seeded = PricingContract.objects.filter(health_plan__name="Plano Odonto Demo")
        self.assertEqual(seeded.count(), 12)
        self.assertTrue(User.objects.filter(email="admin@agendamento.local", role=User.Role.ADMIN).exists())
        # não sobrescreve a configuração do operador
        self.assertTrue(self.config_service.automatic_scheduling_enabled())
