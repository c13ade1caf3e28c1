from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog
from django.db import transaction
from django.utils import timezone

from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.exceptions import (
    AppointmentNotFoundError,
    InvalidSchedulingRequestError,
    InvalidTransitionError,
    SolicitationNotFoundError,
)
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.value_objects import AppointmentStatus, SolicitationStatus

logger = structlog.get_logger(__name__)


class AppointmentLifecycleService:
    """
    scheduled → {confirmed → completed | missed} | cancelled.
    Agendamentos nunca mudam de horário: reagendar cancela o antigo e
    abre uma nova solicitação que substitui a anterior.
    """

    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        solicitation_repo: SolicitationRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.appointment_repo = appointment_repo
        self.solicitation_repo = solicitation_repo
        self.clock = clock

    def confirm(self, appointment_id: int, actor_id: int | None = None) -> AppointmentEntity:
        return self._transition(appointment_id, AppointmentStatus.CONFIRMED, actor_id)

    def complete(self, appointment_id: int, actor_id: int | None = None) -> AppointmentEntity:
        return self._transition(appointment_id, AppointmentStatus.COMPLETED, actor_id)

    def mark_missed(self, appointment_id: int, actor_id: int | None = None) -> AppointmentEntity:
        return self._transition(appointment_id, AppointmentStatus.MISSED, actor_id)

    def cancel(self, appointment_id: int, actor_id: int | None = None, reason: str | None = None) -> AppointmentEntity:
        with transaction.atomic():
            cancelled = self._transition(appointment_id, AppointmentStatus.CANCELLED, actor_id, reason=reason)
            # sem outro agendamento ativo, a solicitação volta para a fila
            if self.appointment_repo.find_active_for_solicitation(cancelled.solicitation_id) is None:
                self.solicitation_repo.transition(
                    cancelled.solicitation_id,
                    SolicitationStatus.PENDING,
                    allowed_from=frozenset({SolicitationStatus.SCHEDULED}),
                )
        return cancelled

    def reschedule(  # noqa: PLR0913
        self,
        appointment_id: int,
        *,
        preferred_date_start: datetime,
        preferred_date_end: datetime,
        actor_id: int | None = None,
        reason: str | None = None,
    ) -> SolicitationEntity:
        """Cancela o agendamento e devolve a nova solicitação `pending`."""
        if preferred_date_end < preferred_date_start:
            raise InvalidSchedulingRequestError("Fim da janela anterior ao início")

        with transaction.atomic():
            cancelled = self._transition(
                appointment_id, AppointmentStatus.CANCELLED, actor_id, reason=reason or "Reagendamento"
            )
            previous = self.solicitation_repo.find_by_id(cancelled.solicitation_id)
            if previous is None:
                raise SolicitationNotFoundError(f"Solicitação {cancelled.solicitation_id} não encontrada")
            self.solicitation_repo.transition(
                previous.id,
                SolicitationStatus.CANCELLED,
                allowed_from=frozenset(set(SolicitationStatus) - {SolicitationStatus.CANCELLED}),
            )
            successor = self.solicitation_repo.create_superseding(
                previous,
                preferred_date_start=preferred_date_start,
                preferred_date_end=preferred_date_end,
                requested_by_id=actor_id,
            )

        logger.info(
            "appointment.rescheduled",
            appointment_id=appointment_id,
            previous_solicitation_id=previous.id,
            solicitation_id=successor.id,
        )
        return successor

    def _transition(
        self,
        appointment_id: int,
        target: AppointmentStatus,
        actor_id: int | None,
        *,
        reason: str | None = None,
    ) -> AppointmentEntity:
        with transaction.atomic():
            appointment = self.appointment_repo.lock(appointment_id)
            if appointment is None:
                raise AppointmentNotFoundError(f"Agendamento {appointment_id} não encontrado")
            if not appointment.can_transition_to(target):
                raise InvalidTransitionError(
                    f"Agendamento {appointment_id}: {appointment.status.value} → {target.value} não permitido"
                )
            updated = self.appointment_repo.set_status(
                appointment_id, target, actor_id=actor_id, at=self.clock(), reason=reason
            )
        logger.info(
            "appointment.status_changed",
            appointment_id=appointment_id,
            from_status=appointment.status.value,
            to_status=target.value,
            actor_id=actor_id,
        )
        return updated
