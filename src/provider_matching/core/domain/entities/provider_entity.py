from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from provider_matching.core.domain.entities._base import EntityMixin
from provider_matching.core.domain.value_objects import Coordinates, ProviderRef, ProviderType


@dataclass(slots=True)
class ProviderEntity(EntityMixin):
    """Clínica ou profissional, projetados no mesmo formato."""
    provider_type: ProviderType
    id: int
    name: str
    status: str = "approved"
    is_active: bool = True
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def ref(self) -> ProviderRef:
        return ProviderRef(self.provider_type, self.id)

    @property
    def location(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(self.latitude, self.longitude)

    def is_eligible(self) -> bool:
        return self.is_active and self.status == "approved"


@dataclass(frozen=True, slots=True)
class WorkingHoursEntity:
    """Bloco de expediente semanal. `day_of_week` segue `date.weekday()` (0 = segunda)."""
    day_of_week: int
    start_time: time
    end_time: time
