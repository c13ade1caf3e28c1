from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from provider_matching.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class ConfirmAppointmentCommand(CommandDTO):
    appointment_id: int
    actor_id: int | None = None

@dataclass(frozen=True)
class CompleteAppointmentCommand(CommandDTO):
    appointment_id: int
    actor_id: int | None = None

@dataclass(frozen=True)
class MarkAppointmentMissedCommand(CommandDTO):
    appointment_id: int
    actor_id: int | None = None

@dataclass(frozen=True)
class CancelAppointmentCommand(CommandDTO):
    appointment_id: int
    actor_id: int | None = None
    reason: str | None = None

@dataclass(frozen=True)
class RescheduleAppointmentCommand(CommandDTO):
    appointment_id: int
    preferred_date_start: datetime
    preferred_date_end: datetime
    actor_id: int | None = None
    reason: str | None = None
