from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import structlog
from django.db import transaction
from django.utils import timezone

from provider_matching.adapters.observability.metrics import SCHEDULING_EXCEPTIONS
from provider_matching.core.application.services.eligibility_service import EligibilityFilter
from provider_matching.core.application.services.notification_dispatch import notify_safely
from provider_matching.core.application.services.ranking_service import Ranker
from provider_matching.core.application.services.scheduling_config_service import SchedulingConfigService
from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.entities.user_entity import UserEntity
from provider_matching.core.domain.exceptions import (
    ExceptionAlreadyResolvedError,
    InvalidSchedulingRequestError,
    InvalidTransitionError,
    ManualOverrideDisabledError,
    NotAuthorizedError,
    ProviderNotFoundError,
    SchedulingExceptionNotFoundError,
    SolicitationNotFoundError,
    UserNotFoundError,
)
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.repositories.negotiation_repository import NegotiationRepository
from provider_matching.core.domain.repositories.procedure_repository import ProcedureRepository
from provider_matching.core.domain.repositories.provider_repository import ProviderRepository
from provider_matching.core.domain.repositories.scheduling_exception_repository import (
    SchedulingExceptionRepository,
)
from provider_matching.core.domain.repositories.solicitation_repository import SolicitationRepository
from provider_matching.core.domain.repositories.user_repository import UserRepository
from provider_matching.core.domain.value_objects import (
    AppointmentStatus,
    ProviderRef,
    SolicitationStatus,
)

logger = structlog.get_logger(__name__)

DEFAULT_APPROVAL_LEAD = timedelta(days=3)
TWO_PLACES = Decimal("0.01")


class SchedulingExceptionService:
    """
    Fluxo de exceção com aprovação humana:
    pending → approved (agendamento criado) | rejected.
    Exceções resolvidas são terminais e imutáveis.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        exception_repo: SchedulingExceptionRepository,
        solicitation_repo: SolicitationRepository,
        appointment_repo: AppointmentRepository,
        provider_repo: ProviderRepository,
        procedure_repo: ProcedureRepository,
        negotiation_repo: NegotiationRepository,
        user_repo: UserRepository,
        config_service: SchedulingConfigService,
        eligibility: EligibilityFilter,
        notifier,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.exception_repo = exception_repo
        self.solicitation_repo = solicitation_repo
        self.appointment_repo = appointment_repo
        self.provider_repo = provider_repo
        self.procedure_repo = procedure_repo
        self.negotiation_repo = negotiation_repo
        self.user_repo = user_repo
        self.config_service = config_service
        self.eligibility = eligibility
        self.notifier = notifier
        self.clock = clock

    # ───────────────────────── solicitação ───────────────────────── #

    def request_exception(  # noqa: PLR0913
        self,
        *,
        solicitation_id: int,
        provider: ProviderRef,
        requested_price: Decimal,
        reason: str,
        requested_by_id: int | None = None,
        requested_date: datetime | None = None,
    ) -> SchedulingExceptionEntity:
        if not self.config_service.allow_manual_override():
            raise ManualOverrideDisabledError("Exceções manuais de agendamento estão desabilitadas")
        if not reason or not reason.strip():
            raise InvalidSchedulingRequestError("Motivo da exceção é obrigatório")
        if requested_price is None or Decimal(requested_price) < 0:
            raise InvalidSchedulingRequestError("Preço solicitado inválido")

        solicitation = self._solicitation(solicitation_id)
        if solicitation.status == SolicitationStatus.CANCELLED:
            raise InvalidTransitionError(f"Solicitação {solicitation_id} foi substituída")
        if self.provider_repo.find(provider) is None:
            raise ProviderNotFoundError(f"Prestador {provider} não encontrado")

        recommended = self.recommended_price(solicitation)
        exception = self.exception_repo.create(
            solicitation_id=solicitation_id,
            provider=provider,
            requested_price=Decimal(requested_price),
            recommended_price=recommended,
            requested_date=requested_date,
            reason=reason.strip(),
            requested_by_id=requested_by_id,
        )
        self.solicitation_repo.transition(
            solicitation_id,
            SolicitationStatus.WAITING_MANUAL_RESPONSE,
            allowed_from=frozenset({
                SolicitationStatus.PENDING,
                SolicitationStatus.PROCESSING,
                SolicitationStatus.FAILED,
            }),
        )
        SCHEDULING_EXCEPTIONS.labels("requested").inc()
        logger.info(
            "scheduling_exception.requested",
            exception_id=exception.id,
            solicitation_id=solicitation_id,
            provider=str(provider),
            requested_price=str(exception.requested_price),
            recommended_price=str(recommended) if recommended is not None else None,
        )
        notify_safely(self.notifier.notify_exception_pending, exception, exception_id=exception.id)
        return exception

    def recommended_price(self, solicitation: SolicitationEntity) -> Decimal | None:
        """Preço do melhor candidato segundo a política vigente (auditoria de variação)."""
        config = self.config_service.load()
        if solicitation.max_distance_km is None:
            solicitation.max_distance_km = config.default_max_distance_km
        now = self.clock()
        candidates = self.eligibility.eligible(solicitation, today=timezone.localdate(now), now=now)
        ranked = Ranker(config.weights).rank(candidates, config.priority, solicitation.radius_km)
        return ranked[0].price if ranked else None

    # ───────────────────────── resolução ───────────────────────── #

    def approve_exception(
        self, exception_id: int, *, approver_id: int, notes: str | None = None
    ) -> SchedulingExceptionEntity:
        approver = self._privileged(approver_id)
        now = self.clock()

        with transaction.atomic():
            exception = self._lock_pending(exception_id)
            solicitation = self._solicitation(exception.solicitation_id)
            if solicitation.status == SolicitationStatus.CANCELLED:
                raise InvalidTransitionError(f"Solicitação {solicitation.id} foi substituída")

            # mantém no máximo um agendamento ativo por solicitação
            previous = self.appointment_repo.find_active_for_solicitation(solicitation.id)
            if previous is not None:
                self.appointment_repo.set_status(
                    previous.id,
                    AppointmentStatus.CANCELLED,
                    actor_id=approver.id,
                    at=now,
                    reason=f"Substituído pela exceção #{exception.id}",
                )

            appointment = self.appointment_repo.create(
                solicitation_id=solicitation.id,
                provider=exception.requested_provider,
                scheduled_date=exception.requested_date or now + DEFAULT_APPROVAL_LEAD,
                duration_minutes=self._duration(solicitation),
                price=exception.requested_price,
                notes=notes or f"Exceção de agendamento #{exception.id}",
                created_by_id=approver.id,
            )
            approved = self.exception_repo.mark_approved(
                exception.id, approver_id=approver.id, notes=notes, appointment_id=appointment.id, at=now
            )
            self.solicitation_repo.transition(
                solicitation.id,
                SolicitationStatus.SCHEDULED,
                allowed_from=frozenset(set(SolicitationStatus) - {SolicitationStatus.CANCELLED}),
            )
            self.negotiation_repo.register_extemporaneous(
                approved,
                health_plan_id=solicitation.health_plan_id,
                procedure_id=solicitation.procedure_id,
                requested_by_id=approved.requested_by_id,
            )

        SCHEDULING_EXCEPTIONS.labels("approved").inc()
        logger.info(
            "scheduling_exception.approved",
            exception_id=exception_id,
            appointment_id=appointment.id,
            approver_id=approver.id,
            replaced_appointment_id=previous.id if previous else None,
        )
        notify_safely(self.notifier.notify_exception_resolved, approved, exception_id=exception_id)
        notify_safely(self.notifier.notify_scheduled, appointment, exception_id=exception_id)
        return approved

    def reject_exception(self, exception_id: int, *, rejecter_id: int, reason: str) -> SchedulingExceptionEntity:
        if not reason or not reason.strip():
            raise InvalidSchedulingRequestError("Motivo da rejeição é obrigatório")
        rejecter = self._privileged(rejecter_id)

        with transaction.atomic():
            exception = self._lock_pending(exception_id)
            rejected = self.exception_repo.mark_rejected(
                exception.id, rejecter_id=rejecter.id, reason=reason.strip(), at=self.clock()
            )

        SCHEDULING_EXCEPTIONS.labels("rejected").inc()
        logger.info("scheduling_exception.rejected", exception_id=exception_id, rejecter_id=rejecter.id)
        notify_safely(self.notifier.notify_exception_resolved, rejected, exception_id=exception_id)
        return rejected

    # ───────────────────────── consultas ───────────────────────── #

    def list_pending_exceptions(self) -> list[SchedulingExceptionEntity]:
        return self.exception_repo.list_pending()

    @staticmethod
    def price_difference_percentage(exception: SchedulingExceptionEntity) -> Decimal | None:
        if not exception.recommended_price:
            return None
        diff = (exception.requested_price - exception.recommended_price) / exception.recommended_price * 100
        return diff.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    # ───────────────────────── helpers ───────────────────────── #

    def _solicitation(self, solicitation_id: int) -> SolicitationEntity:
        solicitation = self.solicitation_repo.find_by_id(solicitation_id)
        if solicitation is None:
            raise SolicitationNotFoundError(f"Solicitação {solicitation_id} não encontrada")
        return solicitation

    def _privileged(self, user_id: int) -> UserEntity:
        user = self.user_repo.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"Usuário {user_id} não encontrado")
        if not user.can_approve_exceptions():
            raise NotAuthorizedError(f"Usuário {user_id} ({user.role}) não pode resolver exceções")
        return user

    def _lock_pending(self, exception_id: int) -> SchedulingExceptionEntity:
        exception = self.exception_repo.lock(exception_id)
        if exception is None:
            raise SchedulingExceptionNotFoundError(f"Exceção {exception_id} não encontrada")
        if exception.is_resolved():
            raise ExceptionAlreadyResolvedError(
                f"Exceção {exception_id} já foi resolvida ({exception.status.value})"
            )
        return exception

    def _duration(self, solicitation: SolicitationEntity) -> int:
        if solicitation.duration_minutes:
            return solicitation.duration_minutes
        return (
            self.procedure_repo.estimated_duration(solicitation.procedure_id)
            or self.config_service.load().default_duration_minutes
        )
