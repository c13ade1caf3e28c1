from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from provider_matching.core.domain.entities.provider_entity import ProviderEntity
from provider_matching.core.domain.value_objects import ProviderRef


@dataclass(slots=True)
class ProviderCandidate:
    """
    Projeção transitória (não persistida) de um prestador elegível,
    montada a cada rodada de matching e descartada em seguida.
    """
    provider: ProviderEntity
    price: Decimal | None
    distance_km: float | None = None
    appointment_load: int = 0
    score: float | None = None

    @property
    def ref(self) -> ProviderRef:
        return self.provider.ref

    @property
    def provider_id(self) -> int:
        return self.provider.id
