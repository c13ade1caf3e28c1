from abc import ABC, abstractmethod


class PatientRepository(ABC):
    @abstractmethod
    def full_address(self, patient_id: int) -> str | None:
        """Endereço completo em uma linha, pronto para geocodificação."""
        ...
