from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from provider_matching.core.application.services.ranking_service import Ranker
from provider_matching.core.domain.entities.provider_candidate import ProviderCandidate
from provider_matching.core.domain.entities.provider_entity import ProviderEntity
from provider_matching.core.domain.entities.scheduling_config import BalancedWeights
from provider_matching.core.domain.value_objects import ProviderType, SchedulingPriority


def candidate(pid, price="100", distance=None, load=0, provider_type=ProviderType.CLINIC):
    return ProviderCandidate(
        provider=ProviderEntity(provider_type=provider_type, id=pid, name=f"P{pid}"),
        price=Decimal(price) if price is not None else None,
        distance_km=distance,
        appointment_load=load,
    )


def ids(ranked):
    return [(c.ref.provider_type.value, c.provider_id) for c in ranked]


class RankerTests(SimpleTestCase):
    def setUp(self):
        self.ranker = Ranker()

    def test_balanced_score_matches_weights(self):
        a = candidate(1, "100", distance=5)
        b = candidate(2, "80", distance=40)

        ranked = self.ranker.rank([b, a], SchedulingPriority.BALANCED, radius_km=50)

        self.assertEqual(ids(ranked), [("clinic", 1), ("clinic", 2)])
        self.assertAlmostEqual(a.score, 0.956, places=6)
        self.assertAlmostEqual(b.score, 0.6768, places=6)

    def test_balanced_score_is_clamped(self):
        expensive = candidate(1, "50000", distance=80, load=500)

        self.assertEqual(self.ranker.score(expensive, radius_km=50), 0.0)

    def test_cost_orders_by_price_then_distance(self):
        ranked = self.ranker.rank(
            [candidate(1, "90", distance=10), candidate(2, "80", distance=30), candidate(3, "90", distance=2)],
            SchedulingPriority.COST,
            radius_km=50,
        )

        self.assertEqual([c.provider_id for c in ranked], [2, 3, 1])

    def test_cost_puts_unknown_price_last(self):
        ranked = self.ranker.rank(
            [candidate(1, None, distance=1), candidate(2, "500", distance=40)],
            SchedulingPriority.COST,
            radius_km=50,
        )

        self.assertEqual([c.provider_id for c in ranked], [2, 1])

    def test_distance_drops_candidates_without_location(self):
        ranked = self.ranker.rank(
            [candidate(1, distance=None), candidate(2, distance=12), candidate(3, distance=3)],
            SchedulingPriority.DISTANCE,
            radius_km=50,
        )

        self.assertEqual([c.provider_id for c in ranked], [3, 2])

    def test_distance_without_patient_location_yields_nothing(self):
        ranked = self.ranker.rank(
            [candidate(1), candidate(2)], SchedulingPriority.DISTANCE, radius_km=50
        )

        self.assertEqual(ranked, [])

    def test_availability_prefers_lowest_load(self):
        ranked = self.ranker.rank(
            [candidate(1, load=7), candidate(2, load=0), candidate(3, load=3)],
            SchedulingPriority.AVAILABILITY,
            radius_km=50,
        )

        self.assertEqual([c.provider_id for c in ranked], [2, 3, 1])

    def test_full_tie_breaks_on_id_then_type(self):
        ranked = self.ranker.rank(
            [
                candidate(2, "100", distance=5),
                candidate(1, "100", distance=5, provider_type=ProviderType.PROFESSIONAL),
                candidate(1, "100", distance=5),
            ],
            SchedulingPriority.BALANCED,
            radius_km=50,
        )

        self.assertEqual(ids(ranked), [("clinic", 1), ("professional", 1), ("clinic", 2)])

    def test_ranking_is_idempotent(self):
        items = [candidate(i, str(100 + i % 3), distance=float(i % 4), load=i % 2) for i in range(1, 9)]

        for policy in SchedulingPriority:
            once = self.ranker.rank(items, policy, radius_km=50)
            twice = self.ranker.rank(once, policy, radius_km=50)
            self.assertEqual(ids(once), ids(twice), policy)

    def test_custom_weights(self):
        ranker = Ranker(BalancedWeights(price=1.0, distance=0.0, load=0.0))

        ranked = ranker.rank(
            [candidate(1, "100", distance=1), candidate(2, "80", distance=40)],
            SchedulingPriority.BALANCED,
            radius_km=50,
        )

        self.assertEqual([c.provider_id for c in ranked], [2, 1])

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            self.ranker.rank([candidate(1)], "fastest", radius_km=50)
