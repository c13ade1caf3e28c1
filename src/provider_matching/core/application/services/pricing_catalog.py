from __future__ import annotations

from datetime import date
from decimal import Decimal

import structlog
from django.utils import timezone

from provider_matching.core.domain.entities.price_contract_entity import PriceContractEntity
from provider_matching.core.domain.repositories.price_contract_repository import PriceContractRepository
from provider_matching.core.domain.value_objects import ProviderRef

logger = structlog.get_logger(__name__)


class PricingCatalog:
    """Resolve o preço vigente de (prestador, procedimento, convênio)."""

    def __init__(self, contract_repo: PriceContractRepository) -> None:
        self.contract_repo = contract_repo

    def active_price(
        self,
        provider: ProviderRef,
        procedure_id: int,
        health_plan_id: int,
        on_date: date | None = None,
    ) -> tuple[Decimal | None, bool]:
        """Retorna `(preço, encontrado)`. Sem contrato vigente: `(None, False)`."""
        day = on_date or timezone.localdate()
        contract = self.contract_repo.find_effective(provider, procedure_id, health_plan_id, day)
        if contract is None:
            return None, False
        price = self.resolve(contract)
        return price, price is not None

    def resolve(self, contract: PriceContractEntity) -> Decimal | None:
        """Preço do contrato; nulo ou zero cai para a tabela do convênio."""
        if contract.price:
            return contract.price
        fallback = self.contract_repo.global_price(contract.procedure_id, contract.health_plan_id)
        logger.debug(
            "pricing.global_fallback",
            provider=str(contract.provider),
            procedure_id=contract.procedure_id,
            found=fallback is not None,
        )
        return fallback
