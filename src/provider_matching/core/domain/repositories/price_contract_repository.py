from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal

from provider_matching.core.domain.entities.price_contract_entity import PriceContractEntity
from provider_matching.core.domain.value_objects import ProviderRef


class PriceContractRepository(ABC):
    @abstractmethod
    def list_effective(self, procedure_id: int, health_plan_id: int, on_date: date) -> list[PriceContractEntity]:
        """Contratos ativos e não expirados para procedimento + convênio."""
        ...

    @abstractmethod
    def find_effective(
        self, provider: ProviderRef, procedure_id: int, health_plan_id: int, on_date: date
    ) -> PriceContractEntity | None:
        ...

    @abstractmethod
    def global_price(self, procedure_id: int, health_plan_id: int) -> Decimal | None:
        """Preço de tabela do convênio (fallback quando o contrato não tem preço)."""
        ...
