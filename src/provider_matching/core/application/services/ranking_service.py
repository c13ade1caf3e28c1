from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from provider_matching.core.domain.entities.provider_candidate import ProviderCandidate
from provider_matching.core.domain.entities.scheduling_config import BalancedWeights
from provider_matching.core.domain.value_objects import SchedulingPriority


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def _tie_break(c: ProviderCandidate) -> tuple:
    """Desempate comum a todas as políticas: distância, preço, id, tipo."""
    return (
        c.distance_km is None,
        c.distance_km or 0.0,
        c.price is None,
        c.price or Decimal(0),
        c.provider_id,
        c.ref.provider_type.value,
    )


class Ranker:
    """
    Ordena candidatos segundo a política configurada. Toda política gera
    ordem total determinística; ordenar duas vezes dá o mesmo resultado.
    """

    def __init__(self, weights: BalancedWeights | None = None) -> None:
        self.weights = weights or BalancedWeights()

    def rank(
        self,
        candidates: Iterable[ProviderCandidate],
        policy: SchedulingPriority,
        radius_km: float,
    ) -> list[ProviderCandidate]:
        items = list(candidates)
        if policy == SchedulingPriority.COST:
            return sorted(items, key=lambda c: (c.price is None, c.price or Decimal(0), *_tie_break(c)))
        if policy == SchedulingPriority.DISTANCE:
            # distância é obrigatória nesta política
            located = [c for c in items if c.distance_km is not None]
            return sorted(located, key=lambda c: (c.distance_km, *_tie_break(c)))
        if policy == SchedulingPriority.AVAILABILITY:
            return sorted(items, key=lambda c: (c.appointment_load, *_tie_break(c)))
        if policy == SchedulingPriority.BALANCED:
            for c in items:
                c.score = self.score(c, radius_km)
            return sorted(items, key=lambda c: (-c.score, *_tie_break(c)))
        raise ValueError(f"Política de prioridade desconhecida: {policy!r}")

    def score(self, candidate: ProviderCandidate, radius_km: float) -> float:
        """Score composto da política `balanced`, em [0, 1]. Maior é melhor."""
        w = self.weights
        price_part = 0.0
        if candidate.price is not None and w.price_ceiling > 0:
            price_part = _clamp(1 - float(candidate.price) / w.price_ceiling)
        distance_part = 0.0
        if candidate.distance_km is not None and radius_km > 0:
            distance_part = _clamp(1 - candidate.distance_km / radius_km)
        load_part = _clamp(1 - candidate.appointment_load / w.load_ceiling) if w.load_ceiling > 0 else 0.0
        # arredondado para não deixar ruído de ponto flutuante decidir empates
        return round(w.price * price_part + w.distance * distance_part + w.load * load_part, 6)
