from plugins.django_interface.models import TussProcedure
from provider_matching.core.domain.repositories.procedure_repository import ProcedureRepository


class ProcedureRepoImpl(ProcedureRepository):
    def estimated_duration(self, procedure_id: int) -> int | None:
        return (
            TussProcedure.objects.filter(pk=procedure_id)
            .values_list("estimated_duration", flat=True)
            .first()
        )
