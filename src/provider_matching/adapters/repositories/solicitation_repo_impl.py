from __future__ import annotations

from datetime import datetime

import structlog
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from plugins.django_interface.models import Solicitation as SolicitationModel
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.value_objects import SolicitationStatus

log = structlog.get_logger(__name__)

# estados a partir dos quais uma tentativa automática pode começar
CLAIMABLE = (
    SolicitationStatus.PENDING,
    SolicitationStatus.PROCESSING,
    SolicitationStatus.FAILED,
    SolicitationStatus.WAITING_MANUAL_RESPONSE,
)


def to_entity(model: SolicitationModel) -> SolicitationEntity:
    return SolicitationEntity.from_model(model, status=SolicitationStatus(model.status))


class SolicitationRepoImpl(SolicitationRepository):
    def find_by_id(self, solicitation_id: int) -> SolicitationEntity | None:
        model = SolicitationModel.objects.filter(pk=solicitation_id).first()
        return to_entity(model) if model else None

    def claim_for_processing(self, solicitation_id: int, now: datetime) -> SolicitationEntity | None:
        # UPDATE condicional: nunca rebaixa uma solicitação já agendada
        updated = SolicitationModel.objects.filter(
            pk=solicitation_id, status__in=[s.value for s in CLAIMABLE]
        ).update(
            status=SolicitationStatus.PROCESSING.value,
            processing_started_at=now,
            scheduling_attempts=F("scheduling_attempts") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            return None
        return self.find_by_id(solicitation_id)

    def transition(
        self,
        solicitation_id: int,
        to_status: SolicitationStatus,
        *,
        allowed_from: frozenset[SolicitationStatus],
    ) -> bool:
        fields = {"status": to_status.value, "updated_at": timezone.now()}
        if to_status != SolicitationStatus.PROCESSING:
            fields["processing_started_at"] = None
        updated = SolicitationModel.objects.filter(
            pk=solicitation_id, status__in=[s.value for s in allowed_from]
        ).update(**fields)
        if not updated:
            log.info(
                "solicitation.transition_skipped",
                solicitation_id=solicitation_id,
                to_status=to_status.value,
            )
        return bool(updated)

    def update_location(self, solicitation_id: int, latitude: float, longitude: float) -> None:
        SolicitationModel.objects.filter(pk=solicitation_id).update(
            preferred_location_lat=latitude,
            preferred_location_lng=longitude,
            updated_at=timezone.now(),
        )

    def list_ids_by_status(self, status: SolicitationStatus, limit: int = 500) -> list[int]:
        return list(
            SolicitationModel.objects.filter(status=status.value)
            .order_by("created_at", "id")
            .values_list("id", flat=True)[:limit]
        )

    def list_stale_processing(self, started_before: datetime, limit: int = 500) -> list[int]:
        return list(
            SolicitationModel.objects.filter(
                status=SolicitationStatus.PROCESSING.value,
                processing_started_at__lt=started_before,
            )
            .order_by("processing_started_at", "id")
            .values_list("id", flat=True)[:limit]
        )

    @transaction.atomic
    def create_superseding(
        self,
        previous: SolicitationEntity,
        *,
        preferred_date_start: datetime,
        preferred_date_end: datetime,
        requested_by_id: int | None,
    ) -> SolicitationEntity:
        model = SolicitationModel.objects.create(
            patient_id=previous.patient_id,
            procedure_id=previous.procedure_id,
            health_plan_id=previous.health_plan_id,
            status=SolicitationStatus.PENDING.value,
            preferred_date_start=preferred_date_start,
            preferred_date_end=preferred_date_end,
            preferred_location_lat=previous.preferred_location_lat,
            preferred_location_lng=previous.preferred_location_lng,
            max_distance_km=previous.max_distance_km,
            state=previous.state,
            city=previous.city,
            duration_minutes=previous.duration_minutes,
            supersedes_id=previous.id,
            requested_by_id=requested_by_id,
        )
        log.info("solicitation.superseded", previous_id=previous.id, new_id=model.id)
        return to_entity(model)
