from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from provider_matching.core.domain.entities._base import EntityMixin
from provider_matching.core.domain.value_objects import Coordinates, SolicitationStatus

DEFAULT_MAX_DISTANCE_KM = 50.0


@dataclass(slots=True)
class SolicitationEntity(EntityMixin):
    id: int
    patient_id: int
    procedure_id: int
    health_plan_id: int
    status: SolicitationStatus
    preferred_date_start: datetime | None = None
    preferred_date_end: datetime | None = None
    preferred_location_lat: float | None = None
    preferred_location_lng: float | None = None
    max_distance_km: float | None = None
    state: str | None = None
    city: str | None = None
    duration_minutes: int | None = None
    processing_started_at: datetime | None = None
    scheduling_attempts: int = 0
    supersedes_id: int | None = None
    requested_by_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def location(self) -> Coordinates | None:
        if self.preferred_location_lat is None or self.preferred_location_lng is None:
            return None
        return Coordinates(self.preferred_location_lat, self.preferred_location_lng)

    @property
    def radius_km(self) -> float:
        if self.max_distance_km is None:
            return DEFAULT_MAX_DISTANCE_KM
        return self.max_distance_km

    def is_scheduled(self) -> bool:
        return self.status == SolicitationStatus.SCHEDULED
