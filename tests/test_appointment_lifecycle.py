from __future__ import annotations

from django.core.cache import cache
from django.test import TestCase

from plugins.django_interface.models import Appointment, Solicitation
from provider_matching.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
from provider_matching.adapters.repositories.solicitation_repo_impl import SolicitationRepoImpl
from provider_matching.core.application.dtos.scheduling_outcome import OutcomeReason
from provider_matching.core.application.services.appointment_lifecycle_service import AppointmentLifecycleService
from provider_matching.core.domain.exceptions import (
    AppointmentNotFoundError,
    InvalidSchedulingRequestError,
    InvalidTransitionError,
)
from provider_matching.core.domain.value_objects import AppointmentStatus, SolicitationStatus
from tests.helpers.builders import (
    NOW,
    build_orchestrator,
    fixed_clock,
    local,
    make_appointment,
    make_catalog,
    make_clinic,
    make_contract,
    make_solicitation,
    make_user,
)


class AppointmentLifecycleTests(TestCase):
    def setUp(self):
        cache.clear()
        self.plan, self.procedure = make_catalog()
        self.clinic = make_clinic()
        make_contract(self.clinic, self.plan, self.procedure, "100.00")
        self.solicitation = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        self.appointment = make_appointment(self.solicitation, self.clinic, local(2025, 6, 3, 9))
        self.actor = make_user()
        self.service = AppointmentLifecycleService(AppointmentRepoImpl(), SolicitationRepoImpl(), clock=fixed_clock())

    def test_confirm_then_complete(self):
        confirmed = self.service.confirm(self.appointment.id, self.actor.id)
        completed = self.service.complete(self.appointment.id, self.actor.id)

        self.assertEqual(confirmed.status, AppointmentStatus.CONFIRMED)
        self.assertEqual(confirmed.confirmed_at, NOW)
        self.assertEqual(completed.status, AppointmentStatus.COMPLETED)
        self.assertEqual(completed.completed_by_id, self.actor.id)

    def test_missed_requires_confirmation(self):
        with self.assertRaises(InvalidTransitionError):
            self.service.mark_missed(self.appointment.id, self.actor.id)

        self.service.confirm(self.appointment.id)
        self.assertEqual(self.service.mark_missed(self.appointment.id).status, AppointmentStatus.MISSED)

    def test_completed_is_terminal(self):
        self.service.confirm(self.appointment.id)
        self.service.complete(self.appointment.id)

        with self.assertRaises(InvalidTransitionError):
            self.service.cancel(self.appointment.id, self.actor.id, "tarde demais")

    def test_unknown_appointment(self):
        with self.assertRaises(AppointmentNotFoundError):
            self.service.confirm(999_999)

    def test_cancel_returns_solicitation_to_queue(self):
        cancelled = self.service.cancel(self.appointment.id, self.actor.id, "Paciente desistiu")

        self.assertEqual(cancelled.status, AppointmentStatus.CANCELLED)
        self.assertEqual(cancelled.cancellation_reason, "Paciente desistiu")
        self.solicitation.refresh_from_db()
        self.assertEqual(self.solicitation.status, Solicitation.Status.PENDING)

    def test_reschedule_supersedes_solicitation(self):
        successor = self.service.reschedule(
            self.appointment.id,
            preferred_date_start=local(2025, 6, 9),
            preferred_date_end=local(2025, 6, 13),
            actor_id=self.actor.id,
        )

        self.appointment.refresh_from_db()
        self.solicitation.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.Status.CANCELLED)
        self.assertEqual(self.appointment.cancellation_reason, "Reagendamento")
        self.assertEqual(self.solicitation.status, Solicitation.Status.CANCELLED)
        self.assertEqual(successor.status, SolicitationStatus.PENDING)
        self.assertEqual(successor.supersedes_id, self.solicitation.id)
        self.assertEqual(successor.preferred_date_start, local(2025, 6, 9))

        # a solicitação antiga não volta a ser agendada; a nova sim
        orchestrator = build_orchestrator()
        self.assertEqual(orchestrator.run(self.solicitation.id).reason, OutcomeReason.SUPERSEDED)
        outcome = orchestrator.run(successor.id)
        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.appointment.scheduled_date, local(2025, 6, 9, 9))

    def test_reschedule_rejects_inverted_window(self):
        with self.assertRaises(InvalidSchedulingRequestError):
            self.service.reschedule(
                self.appointment.id,
                preferred_date_start=local(2025, 6, 13),
                preferred_date_end=local(2025, 6, 9),
            )
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.Status.SCHEDULED)
