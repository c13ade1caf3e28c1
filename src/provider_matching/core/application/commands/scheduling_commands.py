from __future__ import annotations

from dataclasses import dataclass

from provider_matching.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class ScheduleSolicitationCommand(CommandDTO):
    solicitation_id: int
