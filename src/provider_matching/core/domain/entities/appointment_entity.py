from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from provider_matching.core.domain.entities._base import EntityMixin
from provider_matching.core.domain.value_objects import (
    APPOINTMENT_TRANSITIONS,
    AppointmentStatus,
    ProviderRef,
    ProviderType,
)


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: int
    solicitation_id: int
    provider_type: ProviderType
    provider_id: int
    scheduled_date: datetime
    status: AppointmentStatus
    duration_minutes: int = 60
    price: Decimal | None = None
    notes: str | None = None
    created_by_id: int | None = None
    confirmed_by_id: int | None = None
    confirmed_at: datetime | None = None
    completed_by_id: int | None = None
    completed_at: datetime | None = None
    cancelled_by_id: int | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def provider(self) -> ProviderRef:
        return ProviderRef(self.provider_type, self.provider_id)

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_date + timedelta(minutes=self.duration_minutes)

    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED

    def can_transition_to(self, target: AppointmentStatus) -> bool:
        return target in APPOINTMENT_TRANSITIONS[self.status]
