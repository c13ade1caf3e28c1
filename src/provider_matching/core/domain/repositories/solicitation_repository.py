from abc import ABC, abstractmethod
from datetime import datetime

from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.value_objects import SolicitationStatus


class SolicitationRepository(ABC):
    @abstractmethod
    def find_by_id(self, solicitation_id: int) -> SolicitationEntity | None:
        """Recupera uma solicitação pelo ID."""
        ...

    @abstractmethod
    def claim_for_processing(self, solicitation_id: int, now: datetime) -> SolicitationEntity | None:
        """
        Move a solicitação para `processing` com UPDATE condicional.
        Retorna None quando ela já está `scheduled` ou `cancelled`
        (nada a fazer). Uma solicitação já em `processing` pode ser
        reivindicada de novo: o estado é retomável.
        """
        ...

    @abstractmethod
    def transition(
        self,
        solicitation_id: int,
        to_status: SolicitationStatus,
        *,
        allowed_from: frozenset[SolicitationStatus],
    ) -> bool:
        """Transição condicional. Retorna False se o estado atual não permitia."""
        ...

    @abstractmethod
    def update_location(self, solicitation_id: int, latitude: float, longitude: float) -> None:
        """Persiste coordenadas obtidas por geocodificação."""
        ...

    @abstractmethod
    def list_ids_by_status(self, status: SolicitationStatus, limit: int = 500) -> list[int]:
        ...

    @abstractmethod
    def list_stale_processing(self, started_before: datetime, limit: int = 500) -> list[int]:
        """Solicitações presas em `processing` desde antes de `started_before`."""
        ...

    @abstractmethod
    def create_superseding(
        self,
        previous: SolicitationEntity,
        *,
        preferred_date_start: datetime,
        preferred_date_end: datetime,
        requested_by_id: int | None,
    ) -> SolicitationEntity:
        """Cria uma nova solicitação `pending` que substitui `previous`."""
        ...
