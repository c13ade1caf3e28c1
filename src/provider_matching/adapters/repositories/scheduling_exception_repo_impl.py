from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from plugins.django_interface.models import SchedulingException as SchedulingExceptionModel
from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.exceptions import SchedulingExceptionNotFoundError
from provider_matching.core.domain.repositories.scheduling_exception_repository import (
    SchedulingExceptionRepository,
)
from provider_matching.core.domain.value_objects import ExceptionStatus, ProviderRef, ProviderType


def to_entity(model: SchedulingExceptionModel) -> SchedulingExceptionEntity:
    return SchedulingExceptionEntity.from_model(
        model,
        requested_provider_type=ProviderType(model.requested_provider_type),
        status=ExceptionStatus(model.status),
    )


class SchedulingExceptionRepoImpl(SchedulingExceptionRepository):
    def create(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        requested_price: Decimal,
        recommended_price: Decimal | None,
        requested_date: datetime | None,
        reason: str,
        requested_by_id: int | None,
    ) -> SchedulingExceptionEntity:
        model = SchedulingExceptionModel.objects.create(
            solicitation_id=solicitation_id,
            requested_provider_type=provider.provider_type.value,
            requested_provider_id=provider.provider_id,
            requested_price=requested_price,
            recommended_price=recommended_price,
            price_difference=(
                requested_price - recommended_price if recommended_price is not None else None
            ),
            requested_date=requested_date,
            reason=reason,
            status=ExceptionStatus.PENDING.value,
            requested_by_id=requested_by_id,
        )
        return to_entity(model)

    def find_by_id(self, exception_id: int) -> SchedulingExceptionEntity | None:
        model = SchedulingExceptionModel.objects.filter(pk=exception_id).first()
        return to_entity(model) if model else None

    def lock(self, exception_id: int) -> SchedulingExceptionEntity | None:
        model = SchedulingExceptionModel.objects.select_for_update().filter(pk=exception_id).first()
        return to_entity(model) if model else None

    def mark_approved(
        self, exception_id: int, *, approver_id: int, notes: str | None, appointment_id: int, at: datetime
    ) -> SchedulingExceptionEntity:
        model = self._get(exception_id)
        model.status = ExceptionStatus.APPROVED.value
        model.approved_by_id = approver_id
        model.approved_at = at
        model.approval_notes = notes
        model.appointment_id = appointment_id
        model.save(update_fields=[
            "status", "approved_by", "approved_at", "approval_notes", "appointment", "updated_at",
        ])
        return to_entity(model)

    def mark_rejected(
        self, exception_id: int, *, rejecter_id: int, reason: str, at: datetime
    ) -> SchedulingExceptionEntity:
        model = self._get(exception_id)
        model.status = ExceptionStatus.REJECTED.value
        model.rejected_by_id = rejecter_id
        model.rejected_at = at
        model.rejection_reason = reason
        model.save(update_fields=["status", "rejected_by", "rejected_at", "rejection_reason", "updated_at"])
        return to_entity(model)

    def list_pending(self) -> list[SchedulingExceptionEntity]:
        qs = SchedulingExceptionModel.objects.filter(status=ExceptionStatus.PENDING.value).order_by("created_at", "id")
        return [to_entity(m) for m in qs]

    @staticmethod
    def _get(exception_id: int) -> SchedulingExceptionModel:
        model = SchedulingExceptionModel.objects.filter(pk=exception_id).first()
        if model is None:
            raise SchedulingExceptionNotFoundError(f"Exceção {exception_id} não encontrada")
        return model
