from __future__ import annotations

from collections.abc import Callable

from provider_matching.core.application.commands.scheduling_commands import ScheduleSolicitationCommand
from provider_matching.core.application.cqrs import CommandHandler
from provider_matching.core.application.dtos.scheduling_outcome import SchedulingOutcome
from provider_matching.core.application.services.scheduling_orchestrator import SchedulingOrchestrator


class ScheduleSolicitationHandler(CommandHandler[ScheduleSolicitationCommand]):
    """
    Recebe uma fábrica de orquestradores: cada execução lê a
    configuração uma única vez, no momento da construção.
    """

    def __init__(self, orchestrator_factory: Callable[[], SchedulingOrchestrator]) -> None:
        self.orchestrator_factory = orchestrator_factory

    def handle(self, command: ScheduleSolicitationCommand) -> SchedulingOutcome:
        return self.orchestrator_factory().run(command.solicitation_id)
