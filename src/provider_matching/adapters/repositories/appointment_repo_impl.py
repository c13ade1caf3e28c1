from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Count, Q

from plugins.django_interface.models import Appointment as AppointmentModel
from plugins.django_interface.models import Solicitation as SolicitationModel
from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.exceptions import (
    AppointmentNotFoundError,
    ConcurrentSchedulingError,
    SlotUnavailableError,
    SolicitationNotFoundError,
    TransientSchedulingError,
)
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.value_objects import (
    AppointmentStatus,
    ProviderRef,
    ProviderType,
    SolicitationStatus,
)

log = structlog.get_logger(__name__)

CANCELLED = AppointmentStatus.CANCELLED.value
# nenhum procedimento ocupa mais que isso; limita a busca de conflitos
MAX_APPOINTMENT_SPAN = timedelta(hours=24)


def to_entity(model: AppointmentModel) -> AppointmentEntity:
    return AppointmentEntity.from_model(
        model,
        provider_type=ProviderType(model.provider_type),
        status=AppointmentStatus(model.status),
    )


def _provider_q(provider: ProviderRef) -> Q:
    return Q(provider_type=provider.provider_type.value, provider_id=provider.provider_id)


class AppointmentRepoImpl(AppointmentRepository):
    def find_by_id(self, appointment_id: int) -> AppointmentEntity | None:
        model = AppointmentModel.objects.filter(pk=appointment_id).first()
        return to_entity(model) if model else None

    def lock(self, appointment_id: int) -> AppointmentEntity | None:
        model = AppointmentModel.objects.select_for_update().filter(pk=appointment_id).first()
        return to_entity(model) if model else None

    def find_active_for_solicitation(self, solicitation_id: int) -> AppointmentEntity | None:
        model = (
            AppointmentModel.objects.filter(solicitation_id=solicitation_id)
            .exclude(status=CANCELLED)
            .first()
        )
        return to_entity(model) if model else None

    def list_busy_for_provider(self, provider: ProviderRef, start: datetime, end: datetime) -> list[AppointmentEntity]:
        qs = (
            AppointmentModel.objects.filter(_provider_q(provider))
            .exclude(status=CANCELLED)
            .filter(scheduled_date__lt=end, scheduled_date__gte=start - MAX_APPOINTMENT_SPAN)
            .order_by("scheduled_date")
        )
        return [e for e in (to_entity(m) for m in qs) if e.ends_at > start]

    def count_load_by_provider(
        self, providers: Iterable[ProviderRef], start: datetime | None, end: datetime | None
    ) -> dict[ProviderRef, int]:
        refs = list(providers)
        if not refs:
            return {}
        provider_filter = Q()
        for ref in refs:
            provider_filter |= _provider_q(ref)

        qs = AppointmentModel.objects.filter(provider_filter).exclude(status=CANCELLED)
        if start is not None:
            qs = qs.filter(scheduled_date__gte=start)
        if end is not None:
            qs = qs.filter(scheduled_date__lte=end)

        rows = qs.values("provider_type", "provider_id").annotate(total=Count("id"))
        return {
            ProviderRef(ProviderType(r["provider_type"]), r["provider_id"]): r["total"]
            for r in rows
        }

    def has_active_appointment(self, solicitation_id: int) -> bool:
        return AppointmentModel.objects.filter(solicitation_id=solicitation_id).exclude(status=CANCELLED).exists()

    def commit_scheduled(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        scheduled_date: datetime,
        duration_minutes: int,
        price: Decimal | None,
        notes: str | None = None,
        created_by_id: int | None = None,
    ) -> AppointmentEntity:
        try:
            with transaction.atomic():
                solicitation = (
                    SolicitationModel.objects.select_for_update().filter(pk=solicitation_id).first()
                )
                if solicitation is None:
                    raise SolicitationNotFoundError(f"Solicitação {solicitation_id} não encontrada")

                # revalidação: o resultado da busca é apenas consultivo
                if (
                    solicitation.status == SolicitationStatus.SCHEDULED.value
                    or self.has_active_appointment(solicitation_id)
                ):
                    raise ConcurrentSchedulingError(
                        f"Solicitação {solicitation_id} já possui agendamento ativo"
                    )

                ends_at = scheduled_date + timedelta(minutes=duration_minutes)
                if self.list_busy_for_provider(provider, scheduled_date, ends_at):
                    raise SlotUnavailableError(f"Horário {scheduled_date.isoformat()} ocupado para {provider}")

                model = AppointmentModel.objects.create(
                    solicitation_id=solicitation_id,
                    provider_type=provider.provider_type.value,
                    provider_id=provider.provider_id,
                    scheduled_date=scheduled_date,
                    duration_minutes=duration_minutes,
                    status=AppointmentStatus.SCHEDULED.value,
                    price=price,
                    notes=notes,
                    created_by_id=created_by_id,
                )
                solicitation.status = SolicitationStatus.SCHEDULED.value
                solicitation.processing_started_at = None
                solicitation.save(update_fields=["status", "processing_started_at", "updated_at"])
        except IntegrityError as exc:
            # UK parcial: outra tentativa gravou primeiro
            raise ConcurrentSchedulingError(str(exc)) from exc
        except OperationalError as exc:
            # lock timeout / deadlock: a tentativa inteira pode ser repetida
            raise TransientSchedulingError(str(exc)) from exc

        log.info(
            "appointment.committed",
            appointment_id=model.id,
            solicitation_id=solicitation_id,
            provider=str(provider),
            scheduled_date=scheduled_date.isoformat(),
        )
        return to_entity(model)

    def create(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        scheduled_date: datetime,
        duration_minutes: int,
        price: Decimal | None,
        notes: str | None = None,
        created_by_id: int | None = None,
    ) -> AppointmentEntity:
        model = AppointmentModel.objects.create(
            solicitation_id=solicitation_id,
            provider_type=provider.provider_type.value,
            provider_id=provider.provider_id,
            scheduled_date=scheduled_date,
            duration_minutes=duration_minutes,
            status=AppointmentStatus.SCHEDULED.value,
            price=price,
            notes=notes,
            created_by_id=created_by_id,
        )
        return to_entity(model)

    def set_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        *,
        actor_id: int | None,
        at: datetime,
        reason: str | None = None,
    ) -> AppointmentEntity:
        model = AppointmentModel.objects.filter(pk=appointment_id).first()
        if model is None:
            raise AppointmentNotFoundError(f"Agendamento {appointment_id} não encontrado")

        model.status = status.value
        update_fields = ["status", "updated_at"]
        if status == AppointmentStatus.CONFIRMED:
            model.confirmed_by_id, model.confirmed_at = actor_id, at
            update_fields += ["confirmed_by", "confirmed_at"]
        elif status in (AppointmentStatus.COMPLETED, AppointmentStatus.MISSED):
            model.completed_by_id, model.completed_at = actor_id, at
            update_fields += ["completed_by", "completed_at"]
        elif status == AppointmentStatus.CANCELLED:
            model.cancelled_by_id, model.cancelled_at = actor_id, at
            model.cancellation_reason = reason
            update_fields += ["cancelled_by", "cancelled_at", "cancellation_reason"]
        model.save(update_fields=update_fields)
        return to_entity(model)
