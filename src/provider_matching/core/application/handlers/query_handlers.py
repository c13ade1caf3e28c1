from __future__ import annotations

from django.utils import timezone

from provider_matching.core.application.cqrs import QueryHandler
from provider_matching.core.application.dtos.candidate_dto import RankedCandidateDTO
from provider_matching.core.application.queries.scheduling_queries import (
    GetSolicitationQuery,
    ListPendingExceptionsQuery,
    ListRankedCandidatesQuery,
)
from provider_matching.core.application.services.eligibility_service import EligibilityFilter
from provider_matching.core.application.services.ranking_service import Ranker
from provider_matching.core.application.services.scheduling_config_service import SchedulingConfigService
from provider_matching.core.application.services.scheduling_exception_service import SchedulingExceptionService
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.exceptions import SolicitationNotFoundError
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.value_objects import SchedulingPriority


class GetSolicitationHandler(QueryHandler[GetSolicitationQuery, SolicitationEntity | None]):
    def __init__(self, repo: SolicitationRepository) -> None:
        self.repo = repo

    def handle(self, query: GetSolicitationQuery) -> SolicitationEntity | None:
        return self.repo.find_by_id(query.solicitation_id)

class ListRankedCandidatesHandler(QueryHandler[ListRankedCandidatesQuery, list[RankedCandidateDTO]]):
    """Pré-visualização do matching: sem geocodificação e sem efeitos colaterais."""

    def __init__(
        self,
        repo: SolicitationRepository,
        eligibility: EligibilityFilter,
        config_service: SchedulingConfigService,
    ) -> None:
        self.repo = repo
        self.eligibility = eligibility
        self.config_service = config_service

    def handle(self, query: ListRankedCandidatesQuery) -> list[RankedCandidateDTO]:
        solicitation = self.repo.find_by_id(query.solicitation_id)
        if solicitation is None:
            raise SolicitationNotFoundError(f"Solicitação {query.solicitation_id} não encontrada")
        # configuração lida a cada consulta: pesos alterados valem na hora
        config = self.config_service.load()
        policy = SchedulingPriority(query.priority) if query.priority else config.priority
        if solicitation.max_distance_km is None:
            solicitation.max_distance_km = config.default_max_distance_km
        candidates = self.eligibility.eligible(solicitation, today=timezone.localdate())
        ranked = Ranker(config.weights).rank(candidates, policy, solicitation.radius_km)
        return [RankedCandidateDTO.from_candidate(i, c) for i, c in enumerate(ranked, start=1)]

class ListPendingExceptionsHandler(QueryHandler[ListPendingExceptionsQuery, list]):
    def __init__(self, service: SchedulingExceptionService) -> None:
        self.service = service

    def handle(self, query: ListPendingExceptionsQuery):
        return self.service.list_pending_exceptions()
