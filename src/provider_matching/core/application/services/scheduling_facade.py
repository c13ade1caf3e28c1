from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from provider_matching.core.application.commands.appointment_commands import (
    CancelAppointmentCommand,
    CompleteAppointmentCommand,
    ConfirmAppointmentCommand,
    MarkAppointmentMissedCommand,
    RescheduleAppointmentCommand,
)
from provider_matching.core.application.commands.exception_commands import (
    ApproveSchedulingExceptionCommand,
    RejectSchedulingExceptionCommand,
    RequestSchedulingExceptionCommand,
)
from provider_matching.core.application.commands.scheduling_commands import ScheduleSolicitationCommand
from provider_matching.core.application.cqrs import BaseService
from provider_matching.core.application.dtos.scheduling_outcome import SchedulingOutcome
from provider_matching.core.application.queries.scheduling_queries import (
    GetSolicitationQuery,
    ListPendingExceptionsQuery,
    ListRankedCandidatesQuery,
)


class SchedulingFacadeService(BaseService):
    """Fachada exposta a tasks, comandos de gerenciamento e ferramentas de operação."""

    def schedule(self, solicitation_id: int) -> SchedulingOutcome:
        return self.execute(ScheduleSolicitationCommand(solicitation_id=solicitation_id))

    def request_exception(  # noqa: PLR0913
        self,
        solicitation_id: int,
        provider_type: str,
        provider_id: int,
        requested_price: Decimal,
        reason: str,
        requested_by_id: int | None = None,
        requested_date: datetime | None = None,
    ):
        return self.execute(RequestSchedulingExceptionCommand(
            solicitation_id=solicitation_id,
            provider_type=provider_type,
            provider_id=provider_id,
            requested_price=requested_price,
            reason=reason,
            requested_by_id=requested_by_id,
            requested_date=requested_date,
        ))

    def approve_exception(self, exception_id: int, approver_id: int, notes: str | None = None):
        return self.execute(ApproveSchedulingExceptionCommand(exception_id, approver_id, notes))

    def reject_exception(self, exception_id: int, rejecter_id: int, reason: str):
        return self.execute(RejectSchedulingExceptionCommand(exception_id, rejecter_id, reason))

    def confirm_appointment(self, appointment_id: int, actor_id: int | None = None):
        return self.execute(ConfirmAppointmentCommand(appointment_id, actor_id))

    def complete_appointment(self, appointment_id: int, actor_id: int | None = None):
        return self.execute(CompleteAppointmentCommand(appointment_id, actor_id))

    def mark_appointment_missed(self, appointment_id: int, actor_id: int | None = None):
        return self.execute(MarkAppointmentMissedCommand(appointment_id, actor_id))

    def cancel_appointment(self, appointment_id: int, actor_id: int | None = None, reason: str | None = None):
        return self.execute(CancelAppointmentCommand(appointment_id, actor_id, reason))

    def reschedule_appointment(
        self,
        appointment_id: int,
        preferred_date_start: datetime,
        preferred_date_end: datetime,
        actor_id: int | None = None,
        reason: str | None = None,
    ):
        return self.execute(RescheduleAppointmentCommand(
            appointment_id, preferred_date_start, preferred_date_end, actor_id, reason
        ))

    def get_solicitation(self, solicitation_id: int):
        return self.query(GetSolicitationQuery(solicitation_id))

    def ranked_candidates(self, solicitation_id: int, priority: str | None = None):
        return self.query(ListRankedCandidatesQuery(solicitation_id, priority))

    def pending_exceptions(self):
        return self.query(ListPendingExceptionsQuery())
