from abc import ABC, abstractmethod

from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity


class NegotiationRepository(ABC):
    @abstractmethod
    def register_extemporaneous(
        self,
        exception: SchedulingExceptionEntity,
        *,
        health_plan_id: int,
        procedure_id: int,
        requested_by_id: int | None,
    ) -> int:
        """Registra negociação extemporânea para o time comercial. Retorna o ID."""
        ...
