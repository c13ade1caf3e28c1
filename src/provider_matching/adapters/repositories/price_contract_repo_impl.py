from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.db.models import F, Q

from plugins.django_interface.models import HealthPlanProcedurePrice, PricingContract
from provider_matching.core.domain.entities.price_contract_entity import PriceContractEntity
from provider_matching.core.domain.repositories.price_contract_repository import PriceContractRepository
from provider_matching.core.domain.value_objects import ProviderRef, ProviderType


def to_entity(model: PricingContract) -> PriceContractEntity:
    return PriceContractEntity.from_model(model, provider_type=ProviderType(model.provider_type))


def _effective(procedure_id: int, health_plan_id: int, on_date: date):
    return (
        PricingContract.objects.filter(
            procedure_id=procedure_id,
            health_plan_id=health_plan_id,
            is_active=True,
        )
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=on_date))
        .filter(Q(start_date__isnull=True) | Q(start_date__lte=on_date))
        # vigência mais recente primeiro
        .order_by("provider_type", "provider_id", F("start_date").desc(nulls_last=True), "-id")
    )


class PriceContractRepoImpl(PriceContractRepository):
    def list_effective(self, procedure_id: int, health_plan_id: int, on_date: date) -> list[PriceContractEntity]:
        return [to_entity(m) for m in _effective(procedure_id, health_plan_id, on_date)]

    def find_effective(
        self, provider: ProviderRef, procedure_id: int, health_plan_id: int, on_date: date
    ) -> PriceContractEntity | None:
        model = _effective(procedure_id, health_plan_id, on_date).filter(
            provider_type=provider.provider_type.value, provider_id=provider.provider_id
        ).first()
        return to_entity(model) if model else None

    def global_price(self, procedure_id: int, health_plan_id: int) -> Decimal | None:
        return (
            HealthPlanProcedurePrice.objects.filter(procedure_id=procedure_id, health_plan_id=health_plan_id)
            .values_list("price", flat=True)
            .first()
        )
