from abc import ABC, abstractmethod

from provider_matching.core.domain.entities.user_entity import UserEntity


class UserRepository(ABC):
    @abstractmethod
    def find_by_id(self, user_id: int) -> UserEntity | None:
        ...
