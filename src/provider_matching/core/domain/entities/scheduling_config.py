from __future__ import annotations

from dataclasses import dataclass, field

from provider_matching.core.domain.value_objects import SchedulingPriority


@dataclass(frozen=True, slots=True)
class BalancedWeights:
    """Pesos e tetos da política `balanced`. Ajustados à mão no sistema legado."""
    price: float = 0.4
    distance: float = 0.4
    load: float = 0.2
    price_ceiling: float = 10_000.0
    load_ceiling: float = 50.0


@dataclass(frozen=True, slots=True)
class SchedulingConfig:
    """
    Fotografia imutável da configuração, lida uma vez por execução e
    injetada no orquestrador.
    """
    automatic_scheduling_enabled: bool = False
    priority: SchedulingPriority = SchedulingPriority.BALANCED
    min_days_ahead: int = 1
    allow_manual_override: bool = True
    weights: BalancedWeights = field(default_factory=BalancedWeights)
    default_max_distance_km: float = 50.0
    default_duration_minutes: int = 60
    slot_step_minutes: int = 30
    min_lead_hours: int = 1
    processing_watchdog_minutes: int = 30
    max_attempts: int = 2
