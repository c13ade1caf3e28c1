from __future__ import annotations

from collections.abc import Iterable

from django.db import models

from plugins.django_interface.models import Clinic, Professional, ProviderStatus, ProviderWorkingHours
from provider_matching.core.domain.entities.provider_entity import ProviderEntity, WorkingHoursEntity
from provider_matching.core.domain.repositories.provider_repository import ProviderRepository
from provider_matching.core.domain.value_objects import ProviderRef, ProviderType

# mapeamento explícito tipo → model (sem lookup por nome de classe)
PROVIDER_MODELS: dict[ProviderType, type[models.Model]] = {
    ProviderType.CLINIC: Clinic,
    ProviderType.PROFESSIONAL: Professional,
}


def to_entity(provider_type: ProviderType, model) -> ProviderEntity:
    return ProviderEntity.from_model(model, provider_type=provider_type)


class ProviderRepoImpl(ProviderRepository):
    def find(self, ref: ProviderRef) -> ProviderEntity | None:
        model = PROVIDER_MODELS[ref.provider_type].objects.filter(pk=ref.provider_id).first()
        return to_entity(ref.provider_type, model) if model else None

    def find_eligible(
        self,
        refs: Iterable[ProviderRef],
        *,
        state: str | None = None,
        city: str | None = None,
    ) -> list[ProviderEntity]:
        ids_by_type: dict[ProviderType, list[int]] = {}
        for ref in refs:
            ids_by_type.setdefault(ref.provider_type, []).append(ref.provider_id)

        out: list[ProviderEntity] = []
        for provider_type, ids in ids_by_type.items():
            qs = PROVIDER_MODELS[provider_type].objects.filter(
                pk__in=ids, is_active=True, status=ProviderStatus.APPROVED
            )
            if state:
                qs = qs.filter(state__iexact=state)
            if city:
                qs = qs.filter(city__iexact=city)
            out.extend(to_entity(provider_type, m) for m in qs.order_by("id"))
        return out

    def working_hours(self, ref: ProviderRef) -> list[WorkingHoursEntity]:
        rows = ProviderWorkingHours.objects.filter(
            provider_type=ref.provider_type.value,
            provider_id=ref.provider_id,
            is_active=True,
        ).order_by("day_of_week", "position", "id")
        return [WorkingHoursEntity(r.day_of_week, r.start_time, r.end_time) for r in rows]
