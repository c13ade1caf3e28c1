from plugins.django_interface.models import Patient
from provider_matching.core.domain.repositories.patient_repository import PatientRepository


class PatientRepoImpl(PatientRepository):
    def full_address(self, patient_id: int) -> str | None:
        p = Patient.objects.filter(pk=patient_id).first()
        if p is None or not (p.address or p.postal_code):
            return None
        street = ", ".join(x for x in (p.address, p.number) if x)
        city = " - ".join(x for x in (p.city, p.state) if x)
        parts = [street, p.neighborhood, city, p.postal_code, "Brasil"]
        return ", ".join(x for x in parts if x)
