import structlog

from plugins.django_interface.models import ExtemporaneousNegotiation
from provider_matching.core.domain.entities.scheduling_exception_entity import SchedulingExceptionEntity
from provider_matching.core.domain.repositories.negotiation_repository import NegotiationRepository

log = structlog.get_logger(__name__)


class NegotiationRepoImpl(NegotiationRepository):
    def register_extemporaneous(
        self,
        exception: SchedulingExceptionEntity,
        *,
        health_plan_id: int,
        procedure_id: int,
        requested_by_id: int | None,
    ) -> int:
        model, created = ExtemporaneousNegotiation.objects.get_or_create(
            scheduling_exception_id=exception.id,
            defaults=dict(
                provider_type=exception.requested_provider_type.value,
                provider_id=exception.requested_provider_id,
                health_plan_id=health_plan_id,
                procedure_id=procedure_id,
                negotiated_price=exception.requested_price,
                recommended_price=exception.recommended_price,
                requested_by_id=requested_by_id,
            ),
        )
        log.info("negotiation.registered", negotiation_id=model.id, exception_id=exception.id, created=created)
        return model.id
