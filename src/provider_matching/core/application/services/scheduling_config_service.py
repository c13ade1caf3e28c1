from __future__ import annotations

import structlog
from django.conf import settings

from provider_matching.core.domain.entities.scheduling_config import BalancedWeights, SchedulingConfig
from provider_matching.core.domain.exceptions import InvalidSchedulingRequestError
from provider_matching.core.domain.repositories.system_setting_repository import SystemSettingRepository
from provider_matching.core.domain.value_objects import SchedulingPriority

logger = structlog.get_logger(__name__)

KEY_ENABLED = "scheduling_enabled"
KEY_PRIORITY = "scheduling_priority"
KEY_MIN_DAYS = "scheduling_min_days"
KEY_MANUAL_OVERRIDE = "allow_manual_override"
KEY_WEIGHT_PRICE = "scheduling_weight_price"
KEY_WEIGHT_DISTANCE = "scheduling_weight_distance"
KEY_WEIGHT_LOAD = "scheduling_weight_load"
KEY_PRICE_CEILING = "scheduling_price_ceiling"
KEY_LOAD_CEILING = "scheduling_load_ceiling"

_TRUE = {"1", "true", "yes", "on", "sim"}


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE


def _as_int(raw: str | None, default: int) -> int:
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        logger.warning("scheduling_config.invalid_int", raw=raw, default=default)
        return default


def _as_float(raw: str | None, default: float) -> float:
    try:
        return float(raw) if raw is not None else default
    except ValueError:
        logger.warning("scheduling_config.invalid_float", raw=raw, default=default)
        return default


class SchedulingConfigService:
    """
    Configuração editável pelo operador (tabela SystemSetting) somada aos
    parâmetros de processo vindos do settings do Django.
    """

    def __init__(self, setting_repo: SystemSettingRepository) -> None:
        self.setting_repo = setting_repo

    # ───────────── leitura ─────────────
    def automatic_scheduling_enabled(self) -> bool:
        return _as_bool(self.setting_repo.get(KEY_ENABLED), False)

    def scheduling_priority(self) -> SchedulingPriority:
        raw = self.setting_repo.get(KEY_PRIORITY)
        try:
            return SchedulingPriority(raw) if raw else SchedulingPriority.BALANCED
        except ValueError:
            logger.warning("scheduling_config.invalid_priority", raw=raw)
            return SchedulingPriority.BALANCED

    def min_days_ahead(self) -> int:
        return max(0, _as_int(self.setting_repo.get(KEY_MIN_DAYS), 1))

    def allow_manual_override(self) -> bool:
        return _as_bool(self.setting_repo.get(KEY_MANUAL_OVERRIDE), True)

    def balanced_weights(self) -> BalancedWeights:
        d = BalancedWeights()
        get = self.setting_repo.get
        return BalancedWeights(
            price=_as_float(get(KEY_WEIGHT_PRICE), d.price),
            distance=_as_float(get(KEY_WEIGHT_DISTANCE), d.distance),
            load=_as_float(get(KEY_WEIGHT_LOAD), d.load),
            price_ceiling=_as_float(get(KEY_PRICE_CEILING), d.price_ceiling),
            load_ceiling=_as_float(get(KEY_LOAD_CEILING), d.load_ceiling),
        )

    def load(self) -> SchedulingConfig:
        """Fotografia imutável, lida uma vez por execução."""
        return SchedulingConfig(
            automatic_scheduling_enabled=self.automatic_scheduling_enabled(),
            priority=self.scheduling_priority(),
            min_days_ahead=self.min_days_ahead(),
            allow_manual_override=self.allow_manual_override(),
            weights=self.balanced_weights(),
            default_max_distance_km=float(getattr(settings, "MAX_PROVIDER_DISTANCE_KM", 50.0)),
            default_duration_minutes=int(getattr(settings, "SCHEDULING_DEFAULT_DURATION_MINUTES", 60)),
            slot_step_minutes=int(getattr(settings, "SCHEDULING_SLOT_STEP_MINUTES", 30)),
            min_lead_hours=int(getattr(settings, "SCHEDULING_MIN_LEAD_HOURS", 1)),
            processing_watchdog_minutes=int(getattr(settings, "SCHEDULING_PROCESSING_WATCHDOG_MINUTES", 30)),
            max_attempts=max(1, int(getattr(settings, "SCHEDULING_MAX_ATTEMPTS", 2))),
        )

    # ───────────── escrita ─────────────
    def set_automatic_scheduling(self, enabled: bool) -> None:
        self._write(KEY_ENABLED, "true" if enabled else "false")

    def set_scheduling_priority(self, priority: str | SchedulingPriority) -> None:
        try:
            value = SchedulingPriority(priority)
        except ValueError as exc:
            raise InvalidSchedulingRequestError(f"Prioridade inválida: {priority!r}") from exc
        self._write(KEY_PRIORITY, value.value)

    def set_min_days_ahead(self, days: int) -> None:
        if days < 0:
            raise InvalidSchedulingRequestError("min_days_ahead não pode ser negativo")
        self._write(KEY_MIN_DAYS, str(days))

    def set_manual_override(self, allowed: bool) -> None:
        self._write(KEY_MANUAL_OVERRIDE, "true" if allowed else "false")

    def set_balanced_weights(self, weights: BalancedWeights) -> None:
        values = (weights.price, weights.distance, weights.load)
        if any(v < 0 for v in values) or sum(values) <= 0:
            raise InvalidSchedulingRequestError("Pesos devem ser não negativos e somar mais que zero")
        if weights.price_ceiling <= 0 or weights.load_ceiling <= 0:
            raise InvalidSchedulingRequestError("Tetos de normalização devem ser positivos")
        self._write(KEY_WEIGHT_PRICE, str(weights.price))
        self._write(KEY_WEIGHT_DISTANCE, str(weights.distance))
        self._write(KEY_WEIGHT_LOAD, str(weights.load))
        self._write(KEY_PRICE_CEILING, str(weights.price_ceiling))
        self._write(KEY_LOAD_CEILING, str(weights.load_ceiling))

    def _write(self, key: str, value: str) -> None:
        self.setting_repo.set(key, value)
        logger.info("scheduling_config.updated", key=key, value=value)


def load_scheduling_config(setting_repo: SystemSettingRepository) -> SchedulingConfig:
    return SchedulingConfigService(setting_repo).load()
