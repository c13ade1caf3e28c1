from __future__ import annotations

import hashlib
import re

import structlog
from django.core.cache import cache

from provider_matching.adapters.api_clients.mapbox_api_client import MapboxAPIClient
from provider_matching.adapters.observability.metrics import GEOCODING_REQUESTS
from provider_matching.core.domain.services.geo_service import GeocodeResult, GeoService, TravelTime

logger = structlog.get_logger(__name__)

GEOCODE_TTL = 60 * 60 * 24 * 30  # 30 dias
TRAVEL_TTL = 60 * 60 * 24  # 24 h

_WS = re.compile(r"\s+")


def normalize_address(address: str) -> str:
    return _WS.sub(" ", address.casefold()).strip()


def geocode_cache_key(address: str) -> str:
    digest = hashlib.sha1(normalize_address(address).encode("utf-8")).hexdigest()  # noqa: S324
    return f"geo:geocode:{digest}"


def travel_cache_key(lat1: float, lng1: float, lat2: float, lng2: float, mode: str) -> str:
    return "geo:travel:" + ":".join(f"{v:.6f}" for v in (lat1, lng1, lat2, lng2)) + f":{mode}"


class CachedGeoService(GeoService):
    """
    GeoService sobre o cache do Django. Falhas do provedor (timeout,
    HTTP, token ausente) viram resultados `unavailable`; nada é lançado.
    Resultados indisponíveis não são cacheados.
    """

    def __init__(self, client: MapboxAPIClient | None) -> None:
        self.client = client

    def geocode(self, address: str) -> GeocodeResult:
        if not address or not address.strip():
            return GeocodeResult.unavailable()

        key = geocode_cache_key(address)
        cached = cache.get(key)
        if cached is not None:
            GEOCODING_REQUESTS.labels("cache_hit").inc()
            return GeocodeResult.from_cache(cached)

        if self.client is None:
            GEOCODING_REQUESTS.labels("disabled").inc()
            return GeocodeResult.unavailable()

        try:
            coords = self.client.geocode(normalize_address(address))
        except Exception as exc:  # noqa: BLE001
            GEOCODING_REQUESTS.labels("error").inc()
            logger.warning("geo.geocode_unavailable", error=str(exc))
            return GeocodeResult.unavailable()

        if coords is None:
            GEOCODING_REQUESTS.labels("not_found").inc()
            return GeocodeResult.unavailable()

        result = GeocodeResult.found(*coords)
        cache.set(key, result.to_cache(), GEOCODE_TTL)
        GEOCODING_REQUESTS.labels("provider").inc()
        return result

    def travel_time(
        self, lat1: float, lng1: float, lat2: float, lng2: float, mode: str = "driving"
    ) -> TravelTime:
        key = travel_cache_key(lat1, lng1, lat2, lng2, mode)
        cached = cache.get(key)
        if cached is not None:
            return TravelTime(cached["duration_seconds"], cached["distance_km"], available=True)

        if self.client is None:
            return TravelTime.unavailable()

        try:
            route = self.client.directions(lat1, lng1, lat2, lng2, mode)
        except Exception as exc:  # noqa: BLE001
            logger.warning("geo.travel_time_unavailable", mode=mode, error=str(exc))
            return TravelTime.unavailable()

        if route is None:
            return TravelTime.unavailable()

        result = TravelTime(route.duration, route.distance / 1000.0, available=True)
        cache.set(key, {"duration_seconds": result.duration_seconds, "distance_km": result.distance_km}, TRAVEL_TTL)
        return result
