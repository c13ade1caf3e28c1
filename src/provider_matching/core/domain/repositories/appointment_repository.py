from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from provider_matching.core.domain.entities.appointment_entity import AppointmentEntity
from provider_matching.core.domain.value_objects import AppointmentStatus, ProviderRef


class AppointmentRepository(ABC):
    @abstractmethod
    def find_by_id(self, appointment_id: int) -> AppointmentEntity | None:
        ...

    @abstractmethod
    def lock(self, appointment_id: int) -> AppointmentEntity | None:
        """SELECT … FOR UPDATE. Deve rodar dentro de `transaction.atomic()`."""
        ...

    @abstractmethod
    def find_active_for_solicitation(self, solicitation_id: int) -> AppointmentEntity | None:
        """Agendamento não cancelado da solicitação (no máximo um)."""
        ...

    @abstractmethod
    def list_busy_for_provider(self, provider: ProviderRef, start: datetime, end: datetime) -> list[AppointmentEntity]:
        """Agendamentos não cancelados do prestador que tocam [start, end)."""
        ...

    @abstractmethod
    def count_load_by_provider(
        self, providers: Iterable[ProviderRef], start: datetime | None, end: datetime | None
    ) -> dict[ProviderRef, int]:
        """Quantidade de agendamentos não cancelados por prestador na janela."""
        ...

    @abstractmethod
    def commit_scheduled(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        scheduled_date: datetime,
        duration_minutes: int,
        price: Decimal | None,
        notes: str | None = None,
        created_by_id: int | None = None,
    ) -> AppointmentEntity:
        """
        Em uma única transação: trava a solicitação, revalida o estado,
        cria o agendamento e move a solicitação para `scheduled`.

        Lança ConcurrentSchedulingError se já existe agendamento ativo e
        SlotUnavailableError se o horário do prestador foi ocupado.
        """
        ...

    @abstractmethod
    def create(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        scheduled_date: datetime,
        duration_minutes: int,
        price: Decimal | None,
        notes: str | None = None,
        created_by_id: int | None = None,
    ) -> AppointmentEntity:
        """Insere sem validações extras (uso dentro de transações do serviço)."""
        ...

    @abstractmethod
    def set_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        *,
        actor_id: int | None,
        at: datetime,
        reason: str | None = None,
    ) -> AppointmentEntity:
        """Aplica a transição e preenche as colunas de auditoria correspondentes."""
        ...
