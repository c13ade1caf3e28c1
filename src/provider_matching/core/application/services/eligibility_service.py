from __future__ import annotations

from datetime import date, datetime, timedelta

import structlog
from django.utils import timezone

from provider_matching.core.application.services.pricing_catalog import PricingCatalog
from provider_matching.core.domain.entities.price_contract_entity import PriceContractEntity
from provider_matching.core.domain.entities.provider_candidate import ProviderCandidate
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.repositories.price_contract_repository import PriceContractRepository
from provider_matching.core.domain.repositories.provider_repository import ProviderRepository
from provider_matching.core.domain.services.geo_service import GeoService
from provider_matching.core.domain.value_objects import ProviderRef

logger = structlog.get_logger(__name__)

LOAD_WINDOW_FALLBACK = timedelta(days=7)


class EligibilityFilter:
    """
    Monta os candidatos de uma solicitação: prestadores ativos/aprovados
    com contrato vigente para procedimento + convênio, filtrados por
    jurisdição e, havendo coordenadas do paciente, pelo raio máximo.

    Lista vazia não é erro: quem chama decide o que fazer.
    """

    def __init__(
        self,
        contract_repo: PriceContractRepository,
        provider_repo: ProviderRepository,
        appointment_repo: AppointmentRepository,
        pricing: PricingCatalog,
        geo: GeoService,
    ) -> None:
        self.contract_repo = contract_repo
        self.provider_repo = provider_repo
        self.appointment_repo = appointment_repo
        self.pricing = pricing
        self.geo = geo

    def eligible(
        self,
        solicitation: SolicitationEntity,
        today: date | None = None,
        *,
        window: tuple[datetime, datetime] | None = None,
        now: datetime | None = None,
    ) -> list[ProviderCandidate]:
        day = today or timezone.localdate()
        contracts = self._contracts_by_provider(solicitation, day)
        if not contracts:
            logger.info("eligibility.no_contracts", solicitation_id=solicitation.id)
            return []

        providers = self.provider_repo.find_eligible(
            contracts.keys(), state=solicitation.state, city=solicitation.city
        )

        origin = solicitation.location
        radius = solicitation.radius_km
        candidates: list[ProviderCandidate] = []
        for provider in providers:
            distance = None
            if origin is not None and provider.location is not None:
                distance = self.geo.distance_km(
                    origin.latitude, origin.longitude,
                    provider.location.latitude, provider.location.longitude,
                )
                if distance > radius:
                    continue
            candidates.append(
                ProviderCandidate(
                    provider=provider,
                    price=self.pricing.resolve(contracts[provider.ref]),
                    distance_km=distance,
                )
            )

        if candidates:
            start, end = window or load_window(solicitation, now or timezone.now())
            loads = self.appointment_repo.count_load_by_provider([c.ref for c in candidates], start, end)
            for candidate in candidates:
                candidate.appointment_load = loads.get(candidate.ref, 0)

        logger.info(
            "eligibility.candidates",
            solicitation_id=solicitation.id,
            contracts=len(contracts),
            providers=len(providers),
            candidates=len(candidates),
            geo=origin is not None,
        )
        return candidates

    def _contracts_by_provider(
        self, solicitation: SolicitationEntity, day: date
    ) -> dict[ProviderRef, PriceContractEntity]:
        # o repositório já ordena por vigência mais recente: o primeiro vence
        out: dict[ProviderRef, PriceContractEntity] = {}
        for contract in self.contract_repo.list_effective(
            solicitation.procedure_id, solicitation.health_plan_id, day
        ):
            if contract.is_effective_on(day):
                out.setdefault(contract.provider, contract)
        return out


def load_window(solicitation: SolicitationEntity, now: datetime) -> tuple[datetime, datetime]:
    """Janela de carga quando quem chama não informa a janela de busca efetiva."""
    start = solicitation.preferred_date_start or now
    end = solicitation.preferred_date_end
    if end is None or end < start:
        end = start + LOAD_WINDOW_FALLBACK
    return start, end
