from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

import structlog
from django.utils import timezone

from provider_matching.core.application.services.scheduling_config_service import SchedulingConfigService
from provider_matching.core.application.services.scheduling_facade import SchedulingFacadeService
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.value_objects import SolicitationStatus

logger = structlog.get_logger(__name__)


class BatchSchedulingService:
    """Seleção de lotes para as tasks periódicas e o comando de gerenciamento."""

    def __init__(
        self,
        solicitation_repo: SolicitationRepository,
        config_service: SchedulingConfigService,
        facade: SchedulingFacadeService,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.solicitation_repo = solicitation_repo
        self.config_service = config_service
        self.facade = facade
        self.clock = clock

    def pending_ids(self, limit: int = 500) -> list[int]:
        # desabilitado: o lote nem começa (nada é marcado como `failed`)
        if not self.config_service.automatic_scheduling_enabled():
            logger.info("batch.skipped_disabled")
            return []
        return self.solicitation_repo.list_ids_by_status(SolicitationStatus.PENDING, limit)

    def stale_ids(self, limit: int = 500) -> list[int]:
        config = self.config_service.load()
        if not config.automatic_scheduling_enabled:
            logger.info("batch.skipped_disabled", stale=True)
            return []
        minutes = config.processing_watchdog_minutes
        threshold = self.clock() - timedelta(minutes=minutes)
        ids = self.solicitation_repo.list_stale_processing(threshold, limit)
        if ids:
            logger.warning("batch.stale_processing", total=len(ids), watchdog_minutes=minutes)
        return ids

    def run_many(self, solicitation_ids: Iterable[int]) -> dict[str, int]:
        """Executa em processo, uma solicitação por vez. Retorna contagem por motivo."""
        totals: Counter[str] = Counter()
        for sid in solicitation_ids:
            outcome = self.facade.schedule(sid)
            totals[outcome.reason.value] += 1
        logger.info("batch.finished", **totals)
        return dict(totals)
