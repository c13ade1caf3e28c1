from __future__ import annotations

from dataclasses import dataclass

from provider_matching.core.domain.entities._base import EntityMixin

APPROVER_ROLES = frozenset({"admin", "super_admin", "director"})


@dataclass(slots=True)
class UserEntity(EntityMixin):
    id: int
    name: str
    email: str
    role: str
    is_active: bool = True

    def can_approve_exceptions(self) -> bool:
        return self.is_active and self.role in APPROVER_ROLES
