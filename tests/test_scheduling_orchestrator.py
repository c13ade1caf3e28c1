"""
Fluxo ponta a ponta do agendamento automático, do `pending` ao desfecho,
contra o banco de testes (repositórios reais, geo e notificador dublês).
"""
from __future__ import annotations

from datetime import time
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase

from plugins.django_interface.models import Appointment, Solicitation
from provider_matching.core.application.dtos.scheduling_outcome import AttemptStage, OutcomeReason
from provider_matching.core.domain.entities.scheduling_config import SchedulingConfig
from provider_matching.core.domain.services.geo_service import GeocodeResult
from provider_matching.core.domain.value_objects import ProviderType, SchedulingPriority
from tests.helpers.builders import (
    RecordingNotificationGateway,
    StaticGeoService,
    build_orchestrator,
    local,
    make_appointment,
    make_catalog,
    make_clinic,
    make_contract,
    make_solicitation,
    make_working_hours,
)


class SchedulingOrchestratorTests(TestCase):
    def setUp(self):
        cache.clear()
        self.plan, self.procedure = make_catalog(estimated_duration=60)
        self.near = make_clinic("Clínica Perto", lat=-22.33, lng=-49.08)
        self.far = make_clinic("Clínica Longe", lat=-22.40, lng=-49.20)
        make_contract(self.near, self.plan, self.procedure, "100.00")
        make_contract(self.far, self.plan, self.procedure, "80.00")
        self.solicitation = make_solicitation(self.plan, self.procedure)
        self.notifier = RecordingNotificationGateway()

    def _run(self, config: SchedulingConfig | None = None, **kw):
        orchestrator = build_orchestrator(config, notifier=kw.pop("notifier", self.notifier), **kw)
        return orchestrator.run(self.solicitation.id)

    # ───────────────────────── sucesso ───────────────────────── #

    def test_schedules_best_ranked_provider_at_first_free_slot(self):
        outcome = self._run()

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.stage, AttemptStage.DONE)
        self.assertEqual(outcome.reason, OutcomeReason.SCHEDULED)
        self.assertFalse(outcome.duplicate)

        appt = Appointment.objects.get(solicitation=self.solicitation)
        self.assertEqual(appt.provider_type, ProviderType.CLINIC.value)
        self.assertEqual(appt.provider_id, self.near.id)
        self.assertEqual(appt.scheduled_date, local(2025, 6, 3, 9))
        self.assertEqual(appt.price, Decimal("100.00"))
        self.assertEqual(appt.duration_minutes, 60)

        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.SCHEDULED)
        self.assertIsNone(self.solicitation.processing_started_at)
        self.assertEqual(self.solicitation.scheduling_attempts, 1)
        self.assertEqual(len(self.notifier.of("scheduled")), 1)
        self.assertEqual(self.notifier.of("failed"), [])

    def test_cost_policy_picks_cheapest_provider(self):
        outcome = self._run(SchedulingConfig(automatic_scheduling_enabled=True, priority=SchedulingPriority.COST))

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.appointment.provider_id, self.far.id)

    def test_skips_busy_slot_of_same_provider(self):
        other = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        make_appointment(other, self.near, local(2025, 6, 3, 9))

        outcome = self._run()

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.appointment.provider_id, self.near.id)
        self.assertEqual(outcome.appointment.scheduled_date, local(2025, 6, 3, 10))

    def test_falls_through_to_next_candidate_when_first_has_no_slot(self):
        # só atende aos domingos: fora da janela terça–sexta
        make_working_hours(self.near, 6, time(9), time(12))

        outcome = self._run()

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.appointment.provider_id, self.far.id)

    # ───────────────────────── falhas terminais ───────────────────────── #

    def test_no_contract_fails_with_single_notification(self):
        plan, procedure = make_catalog()
        self.solicitation = make_solicitation(plan, procedure)

        outcome = self._run()

        self.assertEqual(outcome.stage, AttemptStage.EXHAUSTED)
        self.assertEqual(outcome.status, "exhausted")
        self.assertEqual(outcome.reason, OutcomeReason.NO_PROVIDERS)
        self.assertEqual(outcome.message, "Nenhum prestador encontrado")
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.FAILED)

        failed = self.notifier.of("failed")
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0][1], "Nenhum prestador encontrado")
        self.assertFalse(Appointment.objects.filter(solicitation=self.solicitation).exists())

    def test_providers_outside_radius_are_not_candidates(self):
        self.solicitation.max_distance_km = 0.1
        self.solicitation.save()

        outcome = self._run()

        self.assertEqual(outcome.reason, OutcomeReason.NO_PROVIDERS)

    def test_no_slot_in_window_fails(self):
        make_working_hours(self.near, 6, time(9), time(12))
        make_working_hours(self.far, 6, time(9), time(12))

        outcome = self._run()

        self.assertEqual(outcome.reason, OutcomeReason.NO_SLOT)
        self.assertEqual(outcome.message, "Nenhum horário disponível")
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.FAILED)
        self.assertEqual(len(self.notifier.of("failed")), 1)

    def test_disabled_marks_failed_without_scheduling(self):
        outcome = self._run(SchedulingConfig(automatic_scheduling_enabled=False))

        self.assertEqual(outcome.reason, OutcomeReason.DISABLED)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.FAILED)
        self.assertEqual(self.notifier.of("failed")[0][1], "Agendamento automático desabilitado")
        self.assertFalse(Appointment.objects.exists())

    def test_unknown_solicitation(self):
        outcome = build_orchestrator(notifier=self.notifier).run(999_999)

        self.assertEqual(outcome.reason, OutcomeReason.NOT_FOUND)
        self.assertEqual(self.notifier.events, [])

    def test_unexpected_error_becomes_failed_outcome(self):
        orchestrator = build_orchestrator(notifier=self.notifier)
        with patch.object(orchestrator.eligibility, "eligible", side_effect=RuntimeError("boom")):
            outcome = orchestrator.run(self.solicitation.id)

        self.assertEqual(outcome.reason, OutcomeReason.ERROR)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.FAILED)
        self.assertEqual(len(self.notifier.of("failed")), 1)

    # ───────────────────────── idempotência e concorrência ───────────────────────── #

    def test_rerun_after_success_is_duplicate(self):
        first = self._run()
        second = self._run()

        self.assertTrue(second.succeeded)
        self.assertTrue(second.duplicate)
        self.assertEqual(second.reason, OutcomeReason.ALREADY_SCHEDULED)
        self.assertEqual(second.appointment_id, first.appointment_id)
        self.assertEqual(Appointment.objects.filter(solicitation=self.solicitation).count(), 1)
        self.assertEqual(len(self.notifier.of("scheduled")), 1)

    def test_concurrent_commit_is_resolved_as_duplicate(self):
        # outro worker gravou o agendamento entre a busca e o commit
        winner = make_appointment(self.solicitation, self.far, local(2025, 6, 4, 14))

        outcome = self._run()

        self.assertTrue(outcome.duplicate)
        self.assertEqual(outcome.appointment_id, winner.id)
        self.assertEqual(Appointment.objects.filter(solicitation=self.solicitation).count(), 1)
        self.assertEqual(self.notifier.of("scheduled"), [])
        self.assertEqual(self.notifier.of("failed"), [])

    def test_unique_constraint_backs_up_commit_recheck(self):
        # re-checagem não enxerga o vencedor: o índice único parcial barra a gravação
        winner = make_appointment(self.solicitation, self.far, local(2025, 6, 4, 14))
        orchestrator = build_orchestrator(notifier=self.notifier)

        with patch.object(orchestrator.appointment_repo, "has_active_appointment", return_value=False):
            outcome = orchestrator.run(self.solicitation.id)

        self.assertTrue(outcome.duplicate)
        self.assertEqual(outcome.appointment_id, winner.id)
        self.assertEqual(Appointment.objects.filter(solicitation=self.solicitation).count(), 1)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.SCHEDULED)
        self.assertEqual(self.notifier.events, [])

    def test_two_runs_for_same_solicitation_commit_once(self):
        late = build_orchestrator(notifier=self.notifier)
        early = build_orchestrator(notifier=self.notifier)
        real_commit = late.appointment_repo.commit_scheduled
        outcomes = []

        def commit_after_rival(**kwargs):
            # a outra tentativa reivindica e grava entre a busca e o commit desta
            if not outcomes:
                outcomes.append(early.run(self.solicitation.id))
            return real_commit(**kwargs)

        with patch.object(late.appointment_repo, "commit_scheduled", side_effect=commit_after_rival):
            late_outcome = late.run(self.solicitation.id)

        self.assertTrue(outcomes[0].succeeded)
        self.assertFalse(outcomes[0].duplicate)
        self.assertTrue(late_outcome.duplicate)
        self.assertEqual(late_outcome.appointment_id, outcomes[0].appointment_id)
        self.assertEqual(
            Appointment.objects.filter(solicitation=self.solicitation).exclude(status="cancelled").count(), 1
        )
        self.assertEqual(len(self.notifier.of("scheduled")), 1)
        self.assertEqual(self.notifier.of("failed"), [])

    def test_slot_taken_by_other_solicitation_moves_to_next_candidate(self):
        rival = make_solicitation(self.plan, self.procedure)
        late = build_orchestrator(notifier=self.notifier)
        early = build_orchestrator(notifier=self.notifier)
        real_commit = late.appointment_repo.commit_scheduled
        rival_outcomes = []

        def commit_after_rival(**kwargs):
            if not rival_outcomes:
                rival_outcomes.append(early.run(rival.id))
            return real_commit(**kwargs)

        with patch.object(late.appointment_repo, "commit_scheduled", side_effect=commit_after_rival) as commit:
            outcome = late.run(self.solicitation.id)

        taken = Appointment.objects.get(solicitation=rival)
        mine = Appointment.objects.get(solicitation=self.solicitation)
        self.assertEqual((taken.provider_id, taken.scheduled_date), (self.near.id, local(2025, 6, 3, 9)))
        self.assertTrue(outcome.succeeded)
        self.assertFalse(outcome.duplicate)
        self.assertEqual(mine.provider_id, self.far.id)
        self.assertEqual(mine.scheduled_date, local(2025, 6, 3, 9))
        self.assertEqual(commit.call_count, 2)

    def test_failed_solicitation_can_be_retried(self):
        self.solicitation.status = Solicitation.Status.FAILED
        self.solicitation.save()

        outcome = self._run()

        self.assertTrue(outcome.succeeded)

    def test_superseded_solicitation_is_not_touched(self):
        self.solicitation.status = Solicitation.Status.CANCELLED
        self.solicitation.save()

        outcome = self._run()

        self.assertEqual(outcome.reason, OutcomeReason.SUPERSEDED)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.CANCELLED)
        self.assertEqual(self.notifier.events, [])

    # ───────────────────────── colaboradores externos ───────────────────────── #

    def test_geocodes_patient_address_when_location_missing(self):
        self.solicitation.preferred_location_lat = None
        self.solicitation.preferred_location_lng = None
        self.solicitation.save()
        geo = StaticGeoService(GeocodeResult.found(-22.3246, -49.0871))

        outcome = self._run(geo=geo)

        self.assertTrue(outcome.succeeded)
        self.assertEqual(len(geo.calls), 1)
        self.assertIn("Bauru - SP", geo.calls[0])
        self.solicitation.refresh_from_db()
        self.assertAlmostEqual(self.solicitation.preferred_location_lat, -22.3246)

    def test_geocoding_outage_degrades_to_jurisdiction_filter(self):
        self.solicitation.preferred_location_lat = None
        self.solicitation.preferred_location_lng = None
        self.solicitation.save()

        outcome = self._run(geo=StaticGeoService(GeocodeResult.unavailable()))

        self.assertTrue(outcome.succeeded)
        self.solicitation.refresh_from_db()
        self.assertIsNone(self.solicitation.preferred_location_lat)

    def test_notifier_failure_does_not_change_outcome(self):
        outcome = self._run(notifier=RecordingNotificationGateway(fail=True))

        self.assertTrue(outcome.succeeded)
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.SCHEDULED)

    def test_concurrent_commit_repairs_solicitation_status(self):
        make_appointment(self.solicitation, self.far, local(2025, 6, 4, 14))

        self._run()

        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.SCHEDULED)
