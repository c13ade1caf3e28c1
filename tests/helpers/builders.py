"""
Fábricas de dados para os testes do motor de agendamento.

Horário de referência: segunda-feira, 02/06/2025 10:00 (America/Sao_Paulo).
Com `min_days_ahead=1` a primeira vaga possível é terça 09:00.
"""
from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from plugins.django_interface.models import (
    Appointment,
    Clinic,
    HealthPlan,
    Patient,
    PricingContract,
    Professional,
    ProviderStatus,
    ProviderType,
    ProviderWorkingHours,
    Solicitation,
    TussProcedure,
    User,
)
from provider_matching.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
from provider_matching.adapters.repositories.patient_repo_impl import PatientRepoImpl
from provider_matching.adapters.repositories.price_contract_repo_impl import PriceContractRepoImpl
from provider_matching.adapters.repositories.procedure_repo_impl import ProcedureRepoImpl
from provider_matching.adapters.repositories.provider_repo_impl import ProviderRepoImpl
from provider_matching.adapters.repositories.solicitation_repo_impl import SolicitationRepoImpl
from provider_matching.core.application.services.eligibility_service import EligibilityFilter
from provider_matching.core.application.services.pricing_catalog import PricingCatalog
from provider_matching.core.application.services.ranking_service import Ranker
from provider_matching.core.application.services.scheduling_orchestrator import SchedulingOrchestrator
from provider_matching.core.application.services.slot_finder import SlotFinder
from provider_matching.core.domain.entities.scheduling_config import SchedulingConfig
from provider_matching.core.domain.services.geo_service import GeocodeResult, GeoService, TravelTime
from provider_matching.core.domain.services.notification_gateway import NotificationGateway

TZ = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2025, 6, 2, 10, 0, tzinfo=TZ)  # segunda-feira

# Bauru/SP
PATIENT_LAT, PATIENT_LNG = -22.3246, -49.0871


def fixed_clock(now: datetime = NOW):
    return lambda: now


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


# ───────────────────────── dublês ───────────────────────── #

class RecordingNotificationGateway(NotificationGateway):
    """Guarda os eventos em memória. `fail=True` simula gateway fora do ar."""

    def __init__(self, fail: bool = False) -> None:
        self.events: list[tuple[str, Any]] = []
        self.fail = fail

    def _record(self, event: str, payload: Any) -> None:
        if self.fail:
            raise ConnectionError("gateway indisponível")
        self.events.append((event, payload))

    def notify_scheduled(self, appointment):
        self._record("scheduled", appointment)

    def notify_failed(self, solicitation, reason):
        self._record("failed", (solicitation, reason))

    def notify_exception_pending(self, exception):
        self._record("exception_pending", exception)

    def notify_exception_resolved(self, exception):
        self._record("exception_resolved", exception)

    def of(self, event: str) -> list[Any]:
        return [payload for name, payload in self.events if name == event]


class StaticGeoService(GeoService):
    def __init__(self, result: GeocodeResult | None = None) -> None:
        self.result = result or GeocodeResult.unavailable()
        self.calls: list[str] = []

    def geocode(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        return self.result

    def travel_time(self, lat1, lng1, lat2, lng2, mode="driving") -> TravelTime:
        return TravelTime.unavailable()


# ───────────────────────── models ───────────────────────── #

def make_user(role: str = User.Role.ADMIN, email: str | None = None) -> User:
    email = email or f"{role}-{User.objects.count() + 1}@agendamento.test"
    return User.objects.create(name=f"Usuário {role}", email=email, role=role)


def make_catalog(estimated_duration: int | None = 60) -> tuple[HealthPlan, TussProcedure]:
    seq = HealthPlan.objects.count() + 1
    plan = HealthPlan.objects.create(name=f"Convênio {seq}")
    procedure = TussProcedure.objects.create(
        code=f"8100{seq:04d}", name="Consulta odontológica", estimated_duration=estimated_duration
    )
    return plan, procedure


def make_clinic(name: str = "Clínica Centro", lat: float | None = -22.33, lng: float | None = -49.08, **kw) -> Clinic:
    defaults = {"status": ProviderStatus.APPROVED, "city": "Bauru", "state": "SP"}
    defaults.update(kw)
    return Clinic.objects.create(name=name, latitude=lat, longitude=lng, **defaults)


def make_professional(name: str = "Dra. Ana", lat: float | None = -22.33, lng: float | None = -49.08, **kw) -> Professional:
    defaults = {"status": ProviderStatus.APPROVED, "city": "Bauru", "state": "SP"}
    defaults.update(kw)
    return Professional.objects.create(name=name, latitude=lat, longitude=lng, **defaults)


def make_contract(provider, plan, procedure, price: str | None = "100.00", **kw) -> PricingContract:
    provider_type = ProviderType.CLINIC if isinstance(provider, Clinic) else ProviderType.PROFESSIONAL
    return PricingContract.objects.create(
        provider_type=provider_type,
        provider_id=provider.id,
        health_plan=plan,
        procedure=procedure,
        price=Decimal(price) if price is not None else None,
        **kw,
    )


def make_working_hours(provider, day_of_week: int, start: time, end: time) -> ProviderWorkingHours:
    provider_type = ProviderType.CLINIC if isinstance(provider, Clinic) else ProviderType.PROFESSIONAL
    return ProviderWorkingHours.objects.create(
        provider_type=provider_type,
        provider_id=provider.id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
    )


def make_patient(**kw) -> Patient:
    defaults = {
        "name": "Maria Souza",
        "address": "Rua Araújo Leite",
        "number": "1000",
        "neighborhood": "Centro",
        "city": "Bauru",
        "state": "SP",
        "postal_code": "17015-000",
    }
    defaults.update(kw)
    return Patient.objects.create(**defaults)


def make_solicitation(plan, procedure, patient: Patient | None = None, **kw) -> Solicitation:
    defaults = {
        "status": Solicitation.Status.PENDING,
        "preferred_date_start": local(2025, 6, 3),
        "preferred_date_end": local(2025, 6, 6, 23),
        "preferred_location_lat": PATIENT_LAT,
        "preferred_location_lng": PATIENT_LNG,
        "state": "SP",
        "city": "Bauru",
    }
    defaults.update(kw)
    return Solicitation.objects.create(
        patient=patient or make_patient(), procedure=procedure, health_plan=plan, **defaults
    )


def make_appointment(solicitation: Solicitation, provider, scheduled_date: datetime, **kw) -> Appointment:
    provider_type = ProviderType.CLINIC if isinstance(provider, Clinic) else ProviderType.PROFESSIONAL
    defaults = {"duration_minutes": 60, "status": Appointment.Status.SCHEDULED, "price": Decimal("100.00")}
    defaults.update(kw)
    return Appointment.objects.create(
        solicitation=solicitation,
        provider_type=provider_type,
        provider_id=provider.id,
        scheduled_date=scheduled_date,
        **defaults,
    )


# ───────────────────────── serviços ───────────────────────── #

def build_eligibility(geo: GeoService | None = None) -> EligibilityFilter:
    contracts = PriceContractRepoImpl()
    return EligibilityFilter(
        contract_repo=contracts,
        provider_repo=ProviderRepoImpl(),
        appointment_repo=AppointmentRepoImpl(),
        pricing=PricingCatalog(contracts),
        geo=geo or StaticGeoService(),
    )


def build_orchestrator(
    config: SchedulingConfig | None = None,
    *,
    notifier: NotificationGateway | None = None,
    geo: GeoService | None = None,
    now: datetime = NOW,
) -> SchedulingOrchestrator:
    config = config or SchedulingConfig(automatic_scheduling_enabled=True)
    geo = geo or StaticGeoService()
    clock = fixed_clock(now)
    appointment_repo = AppointmentRepoImpl()
    return SchedulingOrchestrator(
        config=config,
        solicitation_repo=SolicitationRepoImpl(),
        appointment_repo=appointment_repo,
        patient_repo=PatientRepoImpl(),
        eligibility=build_eligibility(geo),
        ranker=Ranker(config.weights),
        slot_finder=SlotFinder(
            ProviderRepoImpl(), appointment_repo, ProcedureRepoImpl(), config, clock=clock, tz=TZ
        ),
        geo=geo,
        notifier=notifier or RecordingNotificationGateway(),
        clock=clock,
    )
