from __future__ import annotations

from dataclasses import dataclass

from provider_matching.core.application.cqrs import QueryDTO


@dataclass(frozen=True)
class GetSolicitationQuery(QueryDTO):
    solicitation_id: int

@dataclass(frozen=True)
class ListRankedCandidatesQuery(QueryDTO):
    solicitation_id: int
    priority: str | None = None  # sobrescreve a política configurada

@dataclass(frozen=True)
class ListPendingExceptionsQuery(QueryDTO):
    pass
