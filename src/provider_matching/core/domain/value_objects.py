from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ───────────────────────────────────────────────
# Enums de domínio (fechados)
# ───────────────────────────────────────────────
class ProviderType(str, Enum):
    """Tipo do prestador. Substitui o antigo nome-de-classe polimórfico."""
    CLINIC = "clinic"
    PROFESSIONAL = "professional"


class SolicitationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SCHEDULED = "scheduled"
    WAITING_MANUAL_RESPONSE = "waiting_manual_response"
    FAILED = "failed"
    CANCELLED = "cancelled"  # substituída por nova solicitação (reagendamento)


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class ExceptionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SchedulingPriority(str, Enum):
    COST = "cost"
    DISTANCE = "distance"
    AVAILABILITY = "availability"
    BALANCED = "balanced"


# Transições válidas do agendamento (§ ciclo de vida)
APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.MISSED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.MISSED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


# ───────────────────────────────────────────────
# Value objects
# ───────────────────────────────────────────────
@dataclass(frozen=True, slots=True)
class ProviderRef:
    """Identidade de um prestador: tipo fechado + id numérico."""
    provider_type: ProviderType
    provider_id: int

    def __str__(self) -> str:
        return f"{self.provider_type.value}#{self.provider_id}"


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float
