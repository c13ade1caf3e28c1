from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import structlog
from django.utils import timezone

from provider_matching.adapters.observability.metrics import SCHEDULING_ATTEMPTS, SCHEDULING_DURATION
from provider_matching.core.application.dtos.scheduling_outcome import (
    FAILURE_MESSAGES,
    AttemptStage,
    OutcomeReason,
    SchedulingOutcome,
)
from provider_matching.core.application.services.eligibility_service import EligibilityFilter
from provider_matching.core.application.services.notification_dispatch import notify_safely
from provider_matching.core.application.services.ranking_service import Ranker
from provider_matching.core.application.services.slot_finder import SlotFinder
from provider_matching.core.domain.entities.scheduling_config import SchedulingConfig
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.exceptions import (
    ConcurrentSchedulingError,
    SlotUnavailableError,
    TransientSchedulingError,
)
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.repositories.patient_repository import PatientRepository
from provider_matching.core.domain.repositories.procedure_repository import ProcedureRepository
from provider_matching.core.domain.repositories.provider_repository import ProviderRepository
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.services.geo_service import GeoService
from provider_matching.core.domain.services.notification_gateway import NotificationGateway
from provider_matching.core.domain.value_objects import SolicitationStatus

logger = structlog.get_logger(__name__)

# a falha nunca rebaixa uma solicitação agendada ou substituída
FAILABLE = frozenset({
    SolicitationStatus.PENDING,
    SolicitationStatus.PROCESSING,
    SolicitationStatus.FAILED,
    SolicitationStatus.WAITING_MANUAL_RESPONSE,
})


@dataclass
class _Attempt:
    solicitation_id: int
    stage: AttemptStage = AttemptStage.STARTED
    solicitation: SolicitationEntity | None = None


class SchedulingOrchestrator:
    """
    Conduz uma tentativa ponta a ponta:
    filtering → ranking → slot_search → committing → done | exhausted.

    Nunca lança para quem chama: todo desfecho vira `SchedulingOutcome`.
    Toda falha terminal move a solicitação para `failed` e emite uma
    única notificação. Reexecuções são seguras: `processing` é retomável
    e o commit revalida o estado sob lock.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        config: SchedulingConfig,
        solicitation_repo: SolicitationRepository,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        eligibility: EligibilityFilter,
        ranker: Ranker,
        slot_finder: SlotFinder,
        geo: GeoService,
        notifier: NotificationGateway,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.config = config
        self.solicitation_repo = solicitation_repo
        self.appointment_repo = appointment_repo
        self.patient_repo = patient_repo
        self.eligibility = eligibility
        self.ranker = ranker
        self.slot_finder = slot_finder
        self.geo = geo
        self.notifier = notifier
        self.clock = clock

    @classmethod
    def build(  # noqa: PLR0913
        cls,
        *,
        config: SchedulingConfig,
        solicitation_repo: SolicitationRepository,
        appointment_repo: AppointmentRepository,
        patient_repo: PatientRepository,
        provider_repo: ProviderRepository,
        procedure_repo: ProcedureRepository,
        eligibility: EligibilityFilter,
        geo: GeoService,
        notifier: NotificationGateway,
    ) -> SchedulingOrchestrator:
        """Monta ranker e slot finder a partir da mesma fotografia de configuração."""
        return cls(
            config=config,
            solicitation_repo=solicitation_repo,
            appointment_repo=appointment_repo,
            patient_repo=patient_repo,
            eligibility=eligibility,
            ranker=Ranker(config.weights),
            slot_finder=SlotFinder(provider_repo, appointment_repo, procedure_repo, config),
            geo=geo,
            notifier=notifier,
        )

    # ───────────────────────── API pública ───────────────────────── #

    def run(self, solicitation_id: int) -> SchedulingOutcome:
        attempt = _Attempt(solicitation_id)
        started = time.perf_counter()
        try:
            outcome = self._run_with_retries(attempt)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "scheduling.unexpected_error",
                solicitation_id=solicitation_id,
                stage=attempt.stage.value,
                error=str(exc),
                exc_info=True,
            )
            outcome = self._exhaust_after_error(attempt)

        elapsed = time.perf_counter() - started
        SCHEDULING_DURATION.observe(elapsed)
        SCHEDULING_ATTEMPTS.labels(outcome.status, outcome.reason.value).inc()
        logger.info(
            "scheduling.outcome",
            solicitation_id=solicitation_id,
            status=outcome.status,
            reason=outcome.reason.value,
            stage=outcome.stage.value,
            appointment_id=outcome.appointment_id,
            duplicate=outcome.duplicate,
            duration=f"{elapsed:.3f}s",
        )
        return outcome

    # ───────────────────────── fluxo ───────────────────────── #

    def _run_with_retries(self, attempt: _Attempt) -> SchedulingOutcome:
        tries = 0
        while True:
            tries += 1
            try:
                return self._attempt(attempt)
            except TransientSchedulingError as exc:
                if tries >= self.config.max_attempts:
                    raise
                logger.warning(
                    "scheduling.transient_retry",
                    solicitation_id=attempt.solicitation_id,
                    stage=attempt.stage.value,
                    attempt=tries,
                    error=str(exc),
                )

    def _attempt(self, attempt: _Attempt) -> SchedulingOutcome:  # noqa: PLR0911
        self._enter(attempt, AttemptStage.STARTED)

        if not self.config.automatic_scheduling_enabled:
            attempt.solicitation = self.solicitation_repo.find_by_id(attempt.solicitation_id)
            if attempt.solicitation is None:
                return self._not_found(attempt)
            if attempt.solicitation.is_scheduled():
                return self._duplicate(attempt)
            return self._exhaust(attempt, OutcomeReason.DISABLED)

        solicitation = self.solicitation_repo.claim_for_processing(attempt.solicitation_id, self.clock())
        if solicitation is None:
            current = self.solicitation_repo.find_by_id(attempt.solicitation_id)
            if current is None:
                return self._not_found(attempt)
            attempt.solicitation = current
            if current.is_scheduled():
                return self._duplicate(attempt)
            return self._finish(attempt, AttemptStage.EXHAUSTED, OutcomeReason.SUPERSEDED)
        attempt.solicitation = solicitation

        if solicitation.max_distance_km is None:
            solicitation.max_distance_km = self.config.default_max_distance_km

        # filtering
        self._enter(attempt, AttemptStage.FILTERING)
        self._ensure_location(solicitation)
        window = self.slot_finder.window_for(solicitation)
        candidates = self.eligibility.eligible(
            solicitation, today=timezone.localdate(self.clock()), window=window
        )
        if not candidates:
            return self._exhaust(attempt, OutcomeReason.NO_PROVIDERS)

        # ranking
        self._enter(attempt, AttemptStage.RANKING)
        ranked = self.ranker.rank(candidates, self.config.priority, solicitation.radius_km)
        if not ranked:
            return self._exhaust(attempt, OutcomeReason.NO_PROVIDERS)

        # slot_search / committing
        duration = self.slot_finder.duration_for(solicitation)
        for candidate in ranked:
            self._enter(attempt, AttemptStage.SLOT_SEARCH)
            slot = self.slot_finder.find(candidate, window, duration)
            if slot is None:
                continue

            self._enter(attempt, AttemptStage.COMMITTING)
            try:
                appointment = self.appointment_repo.commit_scheduled(
                    solicitation_id=solicitation.id,
                    provider=candidate.ref,
                    scheduled_date=slot,
                    duration_minutes=duration,
                    price=candidate.price,
                    notes=f"Agendamento automático ({self.config.priority.value})",
                )
            except SlotUnavailableError:
                logger.info(
                    "scheduling.slot_taken",
                    solicitation_id=solicitation.id,
                    provider=str(candidate.ref),
                    slot=slot.isoformat(),
                )
                continue
            except ConcurrentSchedulingError:
                return self._resolve_conflict(attempt)

            notify_safely(self.notifier.notify_scheduled, appointment, solicitation_id=solicitation.id)
            return self._finish(attempt, AttemptStage.DONE, OutcomeReason.SCHEDULED, appointment=appointment)

        return self._exhaust(attempt, OutcomeReason.NO_SLOT)

    def _ensure_location(self, solicitation: SolicitationEntity) -> None:
        if solicitation.location is not None:
            return
        address = self.patient_repo.full_address(solicitation.patient_id)
        if not address:
            return
        result = self.geo.geocode(address)
        if not result.available:
            logger.info("scheduling.geocode_degraded", solicitation_id=solicitation.id)
            return
        self.solicitation_repo.update_location(solicitation.id, result.latitude, result.longitude)
        solicitation.preferred_location_lat = result.latitude
        solicitation.preferred_location_lng = result.longitude

    def _resolve_conflict(self, attempt: _Attempt) -> SchedulingOutcome:
        existing = self.appointment_repo.find_active_for_solicitation(attempt.solicitation_id)
        if existing is not None:
            # outra tentativa venceu: descarta este resultado em silêncio
            self.solicitation_repo.transition(
                attempt.solicitation_id,
                SolicitationStatus.SCHEDULED,
                allowed_from=frozenset({SolicitationStatus.PROCESSING}),
            )
            return self._finish(
                attempt, AttemptStage.DONE, OutcomeReason.ALREADY_SCHEDULED, appointment=existing, duplicate=True
            )
        raise TransientSchedulingError(
            f"Conflito no commit sem agendamento ativo (solicitação {attempt.solicitation_id})"
        )

    # ───────────────────────── desfechos ───────────────────────── #

    def _enter(self, attempt: _Attempt, stage: AttemptStage) -> None:
        attempt.stage = stage
        logger.info("scheduling.stage", solicitation_id=attempt.solicitation_id, stage=stage.value)

    def _finish(  # noqa: PLR0913
        self,
        attempt: _Attempt,
        stage: AttemptStage,
        reason: OutcomeReason,
        *,
        appointment=None,
        duplicate: bool = False,
    ) -> SchedulingOutcome:
        self._enter(attempt, stage)
        return SchedulingOutcome(
            solicitation_id=attempt.solicitation_id,
            stage=stage,
            reason=reason,
            appointment=appointment,
            duplicate=duplicate,
            message=FAILURE_MESSAGES.get(reason, ""),
        )

    def _not_found(self, attempt: _Attempt) -> SchedulingOutcome:
        logger.warning("scheduling.solicitation_not_found", solicitation_id=attempt.solicitation_id)
        return self._finish(attempt, AttemptStage.EXHAUSTED, OutcomeReason.NOT_FOUND)

    def _duplicate(self, attempt: _Attempt) -> SchedulingOutcome:
        existing = self.appointment_repo.find_active_for_solicitation(attempt.solicitation_id)
        return self._finish(
            attempt, AttemptStage.DONE, OutcomeReason.ALREADY_SCHEDULED, appointment=existing, duplicate=True
        )

    def _exhaust(self, attempt: _Attempt, reason: OutcomeReason) -> SchedulingOutcome:
        """Falha terminal: `failed` + exatamente uma notificação."""
        moved = self.solicitation_repo.transition(
            attempt.solicitation_id, SolicitationStatus.FAILED, allowed_from=FAILABLE
        )
        if not moved:
            current = self.solicitation_repo.find_by_id(attempt.solicitation_id)
            if current is not None and current.is_scheduled():
                return self._duplicate(attempt)
            return self._finish(attempt, AttemptStage.EXHAUSTED, reason)

        solicitation = attempt.solicitation or self.solicitation_repo.find_by_id(attempt.solicitation_id)
        if solicitation is not None:
            solicitation.status = SolicitationStatus.FAILED
            notify_safely(
                self.notifier.notify_failed,
                solicitation,
                FAILURE_MESSAGES[reason],
                solicitation_id=attempt.solicitation_id,
                reason=reason.value,
            )
        return self._finish(attempt, AttemptStage.EXHAUSTED, reason)

    def _exhaust_after_error(self, attempt: _Attempt) -> SchedulingOutcome:
        try:
            return self._exhaust(attempt, OutcomeReason.ERROR)
        except Exception as exc:  # noqa: BLE001
            # nem a transição para `failed` foi possível (ex.: banco fora)
            logger.error(
                "scheduling.fail_transition_error",
                solicitation_id=attempt.solicitation_id,
                error=str(exc),
                exc_info=True,
            )
            return SchedulingOutcome(
                solicitation_id=attempt.solicitation_id,
                stage=AttemptStage.EXHAUSTED,
                reason=OutcomeReason.ERROR,
                message=FAILURE_MESSAGES[OutcomeReason.ERROR],
            )
