from abc import ABC, abstractmethod


class ProcedureRepository(ABC):
    @abstractmethod
    def estimated_duration(self, procedure_id: int) -> int | None:
        """Duração estimada (minutos) do procedimento TUSS, se cadastrada."""
        ...
