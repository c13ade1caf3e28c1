from __future__ import annotations

from urllib.parse import quote

from pydantic import BaseModel, Field

from provider_matching.adapters.api_clients.base_api_client import BaseAPIClient


class MapboxFeature(BaseModel):
    center: list[float] = Field(default_factory=list)  # [lng, lat]
    place_name: str | None = None
    relevance: float | None = None


class MapboxGeocodingResponse(BaseModel):
    features: list[MapboxFeature] = Field(default_factory=list)


class MapboxRoute(BaseModel):
    duration: float  # segundos
    distance: float  # metros


class MapboxDirectionsResponse(BaseModel):
    code: str | None = None
    routes: list[MapboxRoute] = Field(default_factory=list)


class MapboxAPIClient(BaseAPIClient):
    """Cliente Mapbox: geocodificação direta e rotas (tempo de deslocamento)."""

    def __init__(
        self,
        *,
        access_token: str,
        base_url: str = "https://api.mapbox.com",
        country: str | None = "br",
        timeout: float = 3.0,
        retries: int = 1,
    ) -> None:
        super().__init__(base_url=base_url, timeout=timeout, retries=retries)
        self.access_token = access_token
        self.country = country

    def geocode(self, address: str) -> tuple[float, float] | None:
        """Retorna `(lat, lng)` do melhor resultado, ou None se não houver."""
        params = {"access_token": self.access_token, "limit": 1}
        if self.country:
            params["country"] = self.country
        data = self._get(
            f"/geocoding/v5/mapbox.places/{quote(address, safe='')}.json",
            params=params,
            response_model=MapboxGeocodingResponse,
        )
        if not data.features or len(data.features[0].center) < 2:  # noqa: PLR2004
            return None
        lng, lat = data.features[0].center[:2]
        return lat, lng

    def directions(
        self, lat1: float, lng1: float, lat2: float, lng2: float, mode: str = "driving"
    ) -> MapboxRoute | None:
        data = self._get(
            f"/directions/v5/mapbox/{mode}/{lng1},{lat1};{lng2},{lat2}",
            params={"access_token": self.access_token, "overview": "false"},
            response_model=MapboxDirectionsResponse,
        )
        return data.routes[0] if data.routes else None


def build_mapbox_client(*, access_token: str, **kwargs) -> MapboxAPIClient | None:
    """Sem token configurado não há provedor: o GeoService degrada para `unavailable`."""
    if not access_token:
        return None
    return MapboxAPIClient(access_token=access_token, **kwargs)
