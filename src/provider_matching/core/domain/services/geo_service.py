from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distância de grande círculo (km). Função pura e simétrica."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # clamp contra erro de arredondamento em pontos antipodais
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    """Resultado etiquetado: `available=False` quando o provedor falhou."""
    latitude: float | None
    longitude: float | None
    available: bool

    @classmethod
    def found(cls, latitude: float, longitude: float) -> GeocodeResult:
        return cls(latitude=latitude, longitude=longitude, available=True)

    @classmethod
    def unavailable(cls) -> GeocodeResult:
        return cls(latitude=None, longitude=None, available=False)

    def to_cache(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_cache(cls, raw: dict) -> GeocodeResult:
        return cls.found(float(raw["latitude"]), float(raw["longitude"]))


@dataclass(frozen=True, slots=True)
class TravelTime:
    duration_seconds: float | None
    distance_km: float | None
    available: bool

    @classmethod
    def unavailable(cls) -> TravelTime:
        return cls(duration_seconds=None, distance_km=None, available=False)


class GeoService(ABC):
    """Porta de geolocalização usada pelo motor de matching."""

    @abstractmethod
    def geocode(self, address: str) -> GeocodeResult:
        """Nunca lança: falhas do provedor viram `GeocodeResult.unavailable()`."""
        ...

    @abstractmethod
    def travel_time(
        self, lat1: float, lng1: float, lat2: float, lng2: float, mode: str = "driving"
    ) -> TravelTime:
        ...

    def distance_km(self, lat1: float, lng1: float, lat2: float, lng2: float) -> float:
        return haversine_km(lat1, lng1, lat2, lng2)
