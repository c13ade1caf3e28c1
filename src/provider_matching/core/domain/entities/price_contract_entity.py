from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from provider_matching.core.domain.entities._base import EntityMixin
from provider_matching.core.domain.value_objects import ProviderRef, ProviderType


@dataclass(slots=True)
class PriceContractEntity(EntityMixin):
    id: int
    provider_type: ProviderType
    provider_id: int
    health_plan_id: int
    procedure_id: int
    price: Decimal | None
    is_active: bool = True
    start_date: date | None = None
    end_date: date | None = None

    @property
    def provider(self) -> ProviderRef:
        return ProviderRef(self.provider_type, self.provider_id)

    def is_effective_on(self, day: date) -> bool:
        if not self.is_active:
            return False
        if self.start_date and self.start_date > day:
            return False
        return self.end_date is None or self.end_date >= day
