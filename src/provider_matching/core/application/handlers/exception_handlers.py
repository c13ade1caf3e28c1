from __future__ import annotations

from provider_matching.core.application.commands.exception_commands import (
    ApproveSchedulingExceptionCommand,
    RejectSchedulingExceptionCommand,
    RequestSchedulingExceptionCommand,
)
from provider_matching.core.application.cqrs import CommandHandler
from provider_matching.core.application.services.scheduling_exception_service import SchedulingExceptionService
from provider_matching.core.domain.value_objects import ProviderRef, ProviderType


class RequestSchedulingExceptionHandler(CommandHandler[RequestSchedulingExceptionCommand]):
    def __init__(self, service: SchedulingExceptionService) -> None:
        self.service = service

    def handle(self, command: RequestSchedulingExceptionCommand):
        return self.service.request_exception(
            solicitation_id=command.solicitation_id,
            provider=ProviderRef(ProviderType(command.provider_type), command.provider_id),
            requested_price=command.requested_price,
            reason=command.reason,
            requested_by_id=command.requested_by_id,
            requested_date=command.requested_date,
        )

class ApproveSchedulingExceptionHandler(CommandHandler[ApproveSchedulingExceptionCommand]):
    def __init__(self, service: SchedulingExceptionService) -> None:
        self.service = service

    def handle(self, command: ApproveSchedulingExceptionCommand):
        return self.service.approve_exception(
            command.exception_id, approver_id=command.approver_id, notes=command.notes
        )

class RejectSchedulingExceptionHandler(CommandHandler[RejectSchedulingExceptionCommand]):
    def __init__(self, service: SchedulingExceptionService) -> None:
        self.service = service

    def handle(self, command: RejectSchedulingExceptionCommand):
        return self.service.reject_exception(
            command.exception_id, rejecter_id=command.rejecter_id, reason=command.reason
        )
