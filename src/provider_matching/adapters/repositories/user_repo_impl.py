from plugins.django_interface.models import User
from provider_matching.core.domain.entities.user_entity import UserEntity
from provider_matching.core.domain.repositories.user_repository import UserRepository


class UserRepoImpl(UserRepository):
    def find_by_id(self, user_id: int) -> UserEntity | None:
        model = User.objects.filter(pk=user_id).first()
        return UserEntity.from_model(model) if model else None
