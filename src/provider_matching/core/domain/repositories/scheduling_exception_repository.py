from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.value_objects import ProviderRef


class SchedulingExceptionRepository(ABC):
    @abstractmethod
    def create(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        requested_price: Decimal,
        recommended_price: Decimal | None,
        requested_date: datetime | None,
        reason: str,
        requested_by_id: int | None,
    ) -> SchedulingExceptionEntity:
        """Persiste uma exceção `pending`."""
        ...

    @abstractmethod
    def find_by_id(self, exception_id: int) -> SchedulingExceptionEntity | None:
        ...

    @abstractmethod
    def lock(self, exception_id: int) -> SchedulingExceptionEntity | None:
        """SELECT … FOR UPDATE. Deve rodar dentro de `transaction.atomic()`."""
        ...

    @abstractmethod
    def mark_approved(
        self, exception_id: int, *, approver_id: int, notes: str | None, appointment_id: int, at: datetime
    ) -> SchedulingExceptionEntity:
        ...

    @abstractmethod
    def mark_rejected(
        self, exception_id: int, *, rejecter_id: int, reason: str, at: datetime
    ) -> SchedulingExceptionEntity:
        ...

    @abstractmethod
    def list_pending(self) -> list[SchedulingExceptionEntity]:
        ...
