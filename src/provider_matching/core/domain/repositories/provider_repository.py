from abc import ABC, abstractmethod
from collections.abc import Iterable

from provider_matching.core.domain.entities.provider_entity import ProviderEntity, WorkingHoursEntity
from provider_matching.core.domain.value_objects import ProviderRef


class ProviderRepository(ABC):
    """Resolve clínicas e profissionais a partir de `ProviderRef` explícito."""

    @abstractmethod
    def find(self, ref: ProviderRef) -> ProviderEntity | None:
        ...

    @abstractmethod
    def find_eligible(
        self,
        refs: Iterable[ProviderRef],
        *,
        state: str | None = None,
        city: str | None = None,
    ) -> list[ProviderEntity]:
        """Somente prestadores ativos e aprovados, opcionalmente por UF/cidade."""
        ...

    @abstractmethod
    def working_hours(self, ref: ProviderRef) -> list[WorkingHoursEntity]:
        """Expediente semanal na ordem em que foi configurado."""
        ...
