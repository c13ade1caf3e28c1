from __future__ import annotations

from provider_matching.core.application.commands.appointment_commands import (
    CancelAppointmentCommand,
    CompleteAppointmentCommand,
    ConfirmAppointmentCommand,
    MarkAppointmentMissedCommand,
    RescheduleAppointmentCommand,
)
from provider_matching.core.application.cqrs import CommandHandler
from provider_matching.core.application.services.appointment_lifecycle_service import (
    AppointmentLifecycleService,
)


class ConfirmAppointmentHandler(CommandHandler[ConfirmAppointmentCommand]):
    def __init__(self, service: AppointmentLifecycleService) -> None:
        self.service = service

    def handle(self, command: ConfirmAppointmentCommand):
        return self.service.confirm(command.appointment_id, command.actor_id)

class CompleteAppointmentHandler(CommandHandler[CompleteAppointmentCommand]):
    def __init__(self, service: AppointmentLifecycleService) -> None:
        self.service = service

    def handle(self, command: CompleteAppointmentCommand):
        return self.service.complete(command.appointment_id, command.actor_id)

class MarkAppointmentMissedHandler(CommandHandler[MarkAppointmentMissedCommand]):
    def __init__(self, service: AppointmentLifecycleService) -> None:
        self.service = service

    def handle(self, command: MarkAppointmentMissedCommand):
        return self.service.mark_missed(command.appointment_id, command.actor_id)

class CancelAppointmentHandler(CommandHandler[CancelAppointmentCommand]):
    def __init__(self, service: AppointmentLifecycleService) -> None:
        self.service = service

    def handle(self, command: CancelAppointmentCommand):
        return self.service.cancel(command.appointment_id, command.actor_id, command.reason)

class RescheduleAppointmentHandler(CommandHandler[RescheduleAppointmentCommand]):
    def __init__(self, service: AppointmentLifecycleService) -> None:
        self.service = service

    def handle(self, command: RescheduleAppointmentCommand):
        return self.service.reschedule(
            command.appointment_id,
            preferred_date_start=command.preferred_date_start,
            preferred_date_end=command.preferred_date_end,
            actor_id=command.actor_id,
            reason=command.reason,
        )
