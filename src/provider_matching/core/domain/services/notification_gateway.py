from abc import ABC, abstractmethod

from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity


class NotificationGateway(ABC):
    """
    Colaborador externo, fire-and-forget. Implementações não devem
    propagar erros de entrega: registram em log e seguem.
    """

    @abstractmethod
    def notify_scheduled(self, appointment: AppointmentEntity) -> None:
        ...

    @abstractmethod
    def notify_failed(self, solicitation: SolicitationEntity, reason: str) -> None:
        ...

    @abstractmethod
    def notify_exception_pending(self, exception: SchedulingExceptionEntity) -> None:
        ...

    @abstractmethod
    def notify_exception_resolved(self, exception: SchedulingExceptionEntity) -> None:
        ...
