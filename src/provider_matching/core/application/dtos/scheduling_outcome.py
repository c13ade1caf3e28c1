from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity


class AttemptStage(str, Enum):
    STARTED = "started"
    FILTERING = "filtering"
    RANKING = "ranking"
    SLOT_SEARCH = "slot_search"
    COMMITTING = "committing"
    DONE = "done"
    EXHAUSTED = "exhausted"


class OutcomeReason(str, Enum):
    SCHEDULED = "scheduled"
    ALREADY_SCHEDULED = "already_scheduled"
    SUPERSEDED = "superseded"
    DISABLED = "disabled"
    NOT_FOUND = "not_found"
    NO_PROVIDERS = "no_providers"
    NO_SLOT = "no_slot"
    ERROR = "error"


# texto humano enviado junto da notificação de falha
FAILURE_MESSAGES: dict[OutcomeReason, str] = {
    OutcomeReason.DISABLED: "Agendamento automático desabilitado",
    OutcomeReason.NOT_FOUND: "Solicitação não encontrada",
    OutcomeReason.NO_PROVIDERS: "Nenhum prestador encontrado",
    OutcomeReason.NO_SLOT: "Nenhum horário disponível",
    OutcomeReason.ERROR: "Erro inesperado no agendamento automático",
}


@dataclass(frozen=True)
class SchedulingOutcome:
    """
    Resultado estruturado de uma tentativa. O orquestrador nunca lança:
    toda saída vira um `SchedulingOutcome`.
    """
    solicitation_id: int
    stage: AttemptStage
    reason: OutcomeReason
    appointment: AppointmentEntity | None = None
    duplicate: bool = False
    message: str = ""

    @property
    def status(self) -> str:
        return "done" if self.stage == AttemptStage.DONE else "exhausted"

    @property
    def succeeded(self) -> bool:
        return self.appointment is not None

    @property
    def appointment_id(self) -> int | None:
        return self.appointment.id if self.appointment else None
