from decimal import Decimal

from pydantic import BaseModel

from provider_matching.core.domain.entities.provider_candidate import ProviderCandidate


class RankedCandidateDTO(BaseModel):
    """
    Projeção de um candidato ranqueado para ferramentas de operação
    (pré-visualização do matching, sem efeitos colaterais).
    """
    position: int
    provider_type: str
    provider_id: int
    name: str
    price: Decimal | None = None
    distance_km: float | None = None
    appointment_load: int = 0
    score: float | None = None

    @classmethod
    def from_candidate(cls, position: int, candidate: ProviderCandidate) -> "RankedCandidateDTO":
        return cls(
            position=position,
            provider_type=candidate.ref.provider_type.value,
            provider_id=candidate.provider_id,
            name=candidate.provider.name,
            price=candidate.price,
            distance_km=None if candidate.distance_km is None else round(candidate.distance_km, 3),
            appointment_load=candidate.appointment_load,
            score=candidate.score,
        )
