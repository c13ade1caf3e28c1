from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from provider_matching.core.application.cqrs import CommandDTO


@dataclass(frozen=True)
class RequestSchedulingExceptionCommand(CommandDTO):
    solicitation_id: int
    provider_type: str
    provider_id: int
    requested_price: Decimal
    reason: str
    requested_by_id: int | None = None
    requested_date: datetime | None = None

@dataclass(frozen=True)
class ApproveSchedulingExceptionCommand(CommandDTO):
    exception_id: int
    approver_id: int
    notes: str | None = None

@dataclass(frozen=True)
class RejectSchedulingExceptionCommand(CommandDTO):
    exception_id: int
    rejecter_id: int
    reason: str
