from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase

from plugins.django_interface.models import HealthPlanProcedurePrice, ProviderStatus, Solicitation
from provider_matching.adapters.repositories.price_contract_repo_impl import PriceContractRepoImpl
from provider_matching.adapters.repositories.solicitation_repo_impl import SolicitationRepoImpl
from provider_matching.core.application.services.pricing_catalog import PricingCatalog
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.value_objects import ProviderRef, ProviderType, SolicitationStatus
from tests.helpers.builders import (
    NOW,
    build_eligibility,
    local,
    make_appointment,
    make_catalog,
    make_clinic,
    make_contract,
    make_professional,
    make_solicitation,
)

TODAY = date(2025, 6, 2)


class EligibilityFilterTests(TestCase):
    def setUp(self):
        cache.clear()
        self.plan, self.procedure = make_catalog()
        self.eligibility = build_eligibility()
        self.repo = SolicitationRepoImpl()

    def _eligible(self, solicitation: Solicitation):
        return self.eligibility.eligible(self.repo.find_by_id(solicitation.id), today=TODAY)

    def test_only_active_approved_providers_with_effective_contract(self):
        ok = make_clinic("Aprovada")
        pending = make_clinic("Pendente", status=ProviderStatus.PENDING)
        inactive = make_professional("Inativo", is_active=False)
        expired = make_clinic("Contrato vencido")
        for provider in (ok, pending, inactive):
            make_contract(provider, self.plan, self.procedure)
        make_contract(expired, self.plan, self.procedure, end_date=date(2025, 5, 31))

        candidates = self._eligible(make_solicitation(self.plan, self.procedure))

        self.assertEqual([c.provider_id for c in candidates], [ok.id])

    def test_jurisdiction_filter(self):
        make_contract(make_clinic("Bauru"), self.plan, self.procedure)
        make_contract(make_clinic("Marília", city="Marilia"), self.plan, self.procedure)

        candidates = self._eligible(make_solicitation(self.plan, self.procedure, city="bauru"))

        self.assertEqual([c.provider.name for c in candidates], ["Bauru"])

    def test_provider_without_coordinates_is_kept_without_distance(self):
        make_contract(make_clinic("Sem GPS", lat=None, lng=None), self.plan, self.procedure)

        candidates = self._eligible(make_solicitation(self.plan, self.procedure))

        self.assertEqual(len(candidates), 1)
        self.assertIsNone(candidates[0].distance_km)

    def test_load_counts_active_appointments_in_window(self):
        clinic = make_clinic()
        make_contract(clinic, self.plan, self.procedure)
        other = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        make_appointment(other, clinic, local(2025, 6, 4, 9))
        cancelled = make_solicitation(self.plan, self.procedure)
        make_appointment(cancelled, clinic, local(2025, 6, 4, 10), status="cancelled")

        candidates = self._eligible(make_solicitation(self.plan, self.procedure))

        self.assertEqual(candidates[0].appointment_load, 1)

    def test_load_without_preferred_window_ignores_past_appointments(self):
        clinic = make_clinic()
        make_contract(clinic, self.plan, self.procedure)
        old = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        make_appointment(old, clinic, local(2025, 5, 20, 9), status="completed")
        upcoming = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        make_appointment(upcoming, clinic, local(2025, 6, 4, 9))
        solicitation = make_solicitation(
            self.plan, self.procedure, preferred_date_start=None, preferred_date_end=None
        )

        candidates = self.eligibility.eligible(self.repo.find_by_id(solicitation.id), today=TODAY, now=NOW)

        self.assertEqual(candidates[0].appointment_load, 1)

    def test_load_uses_explicit_search_window(self):
        clinic = make_clinic()
        make_contract(clinic, self.plan, self.procedure)
        other = make_solicitation(self.plan, self.procedure, status=Solicitation.Status.SCHEDULED)
        make_appointment(other, clinic, local(2025, 6, 4, 9))
        solicitation = self.repo.find_by_id(make_solicitation(self.plan, self.procedure).id)

        candidates = self.eligibility.eligible(
            solicitation, today=TODAY, window=(local(2025, 6, 5), local(2025, 6, 6, 23))
        )

        self.assertEqual(candidates[0].appointment_load, 0)

    def test_price_falls_back_to_health_plan_table(self):
        clinic = make_clinic()
        make_contract(clinic, self.plan, self.procedure, price=None)
        HealthPlanProcedurePrice.objects.create(health_plan=self.plan, procedure=self.procedure, price=Decimal("75.00"))

        candidates = self._eligible(make_solicitation(self.plan, self.procedure))

        self.assertEqual(candidates[0].price, Decimal("75.00"))


class PricingCatalogTests(TestCase):
    def setUp(self):
        self.plan, self.procedure = make_catalog()
        self.clinic = make_clinic()
        self.ref = ProviderRef(ProviderType.CLINIC, self.clinic.id)
        self.catalog = PricingCatalog(PriceContractRepoImpl())

    def test_most_recent_effective_contract_wins(self):
        make_contract(self.clinic, self.plan, self.procedure, "90.00", start_date=date(2024, 1, 1))
        make_contract(self.clinic, self.plan, self.procedure, "110.00", start_date=date(2025, 1, 1))

        self.assertEqual(
            self.catalog.active_price(self.ref, self.procedure.id, self.plan.id, TODAY),
            (Decimal("110.00"), True),
        )

    def test_no_contract(self):
        self.assertEqual(self.catalog.active_price(self.ref, self.procedure.id, self.plan.id, TODAY), (None, False))

    def test_future_contract_is_not_effective(self):
        make_contract(self.clinic, self.plan, self.procedure, "90.00", start_date=date(2025, 7, 1))

        self.assertEqual(self.catalog.active_price(self.ref, self.procedure.id, self.plan.id, TODAY), (None, False))


class SolicitationRadiusTests(SimpleTestCase):
    def _solicitation(self, max_distance_km):
        return SolicitationEntity(
            id=1, patient_id=1, procedure_id=1, health_plan_id=1,
            status=SolicitationStatus.PENDING, max_distance_km=max_distance_km,
        )

    def test_missing_radius_uses_default(self):
        self.assertEqual(self._solicitation(None).radius_km, 50.0)

    def test_explicit_zero_radius_is_kept(self):
        self.assertEqual(self._solicitation(0).radius_km, 0)
