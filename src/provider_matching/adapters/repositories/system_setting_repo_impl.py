from django.core.cache import cache

from plugins.django_interface.models import SystemSetting
from provider_matching.core.domain.repositories.system_setting_repository import SystemSettingRepository

_MISSING = "__missing__"


class SystemSettingRepoImpl(SystemSettingRepository):
    """Leitura via cache do Django (TTL configurável); escrita invalida a chave."""

    def __init__(self, ttl_seconds: int = 3600) -> None:
        self.ttl = ttl_seconds

    @staticmethod
    def _key(key: str) -> str:
        return f"system_setting:{key}"

    def get(self, key: str) -> str | None:
        cached = cache.get(self._key(key))
        if cached is not None:
            return None if cached == _MISSING else cached
        value = SystemSetting.objects.filter(key=key).values_list("value", flat=True).first()
        cache.set(self._key(key), _MISSING if value is None else value, self.ttl)
        return value

    def set(self, key: str, value: str) -> None:
        SystemSetting.objects.update_or_create(key=key, defaults={"value": value})
        cache.delete(self._key(key))
