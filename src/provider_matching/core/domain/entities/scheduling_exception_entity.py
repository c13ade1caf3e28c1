from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from provider_matching.core.domain.entities._base import EntityMixin
from provider_matching.core.domain.value_objects import ExceptionStatus, ProviderRef, ProviderType


@dataclass(slots=True)
class SchedulingExceptionEntity(EntityMixin):
    id: int
    solicitation_id: int
    requested_provider_type: ProviderType
    requested_provider_id: int
    requested_price: Decimal
    reason: str
    status: ExceptionStatus
    recommended_price: Decimal | None = None
    price_difference: Decimal | None = None
    requested_date: datetime | None = None
    requested_by_id: int | None = None
    approved_by_id: int | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None
    rejected_by_id: int | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    appointment_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def requested_provider(self) -> ProviderRef:
        return ProviderRef(self.requested_provider_type, self.requested_provider_id)

    def is_resolved(self) -> bool:
        return self.status != ExceptionStatus.PENDING
