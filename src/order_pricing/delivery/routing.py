"""
Distance Resolver - road distance between two places.

Both places are geocoded concurrently; the routing call waits for both.
When routing fails (or is disabled) the great-circle distance scaled by a
road-indirection factor stands in, so only a geocoding failure can fail here.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from ..engine.errors import ProviderError
from .geocoding import GeocodeClient, GeocodeResult
from .http import JsonHttpProvider

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
ROAD_FACTOR = 1.4


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two lat/lon pairs."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class RoutingProvider(Protocol):
    name: str

    def driving_distance_m(self, origin: GeocodeResult, destination: GeocodeResult) -> float:
        """Driving distance in meters for the best route, or raise ProviderError."""
        ...


class OsrmProvider(JsonHttpProvider):
    """OSRM route service (`/route/v1/driving/{lon},{lat};{lon},{lat}`)."""

    name = "osrm"

    def __init__(self, base_url: str = "https://router.project-osrm.org/route/v1/driving",
                 timeout: float = 8.0, session: Optional[requests.Session] = None,
                 user_agent: Optional[str] = None):
        super().__init__(base_url, timeout=timeout, session=session, user_agent=user_agent)

    def driving_distance_m(self, origin: GeocodeResult, destination: GeocodeResult) -> float:
        url = f"{self.base_url}/{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        data = self._get_json(url, params={"overview": "false", "alternatives": "false", "steps": "false"})
        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            code = data.get("code") if isinstance(data, dict) else None
            raise ProviderError(self.name, f"no route found (code={code})")
        try:
            return float(routes[0]["distance"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"malformed route: {e}") from e


@dataclass(frozen=True)
class RoadDistance:
    """Resolved distance with how it was obtained."""
    km: float
    source: str  # "route" or "haversine"
    origin: GeocodeResult
    destination: GeocodeResult


class DistanceResolver:
    """Road distance via routing, falling back to haversine × road factor."""

    def __init__(self, geocoder: GeocodeClient, router: Optional[RoutingProvider] = None,
                 road_factor: float = ROAD_FACTOR):
        self.geocoder = geocoder
        self.router = router
        self.road_factor = road_factor

    @classmethod
    def from_settings(cls, settings, geocoder: GeocodeClient,
                      session: Optional[requests.Session] = None) -> 'DistanceResolver':
        router = OsrmProvider(settings.osrm_url, timeout=settings.provider_timeout,
                              session=session, user_agent=settings.user_agent)
        return cls(geocoder, router, road_factor=settings.road_factor)

    def geocode_pair(self, origin: str, destination: str) -> tuple[GeocodeResult, GeocodeResult]:
        """Geocode both ends concurrently; LocationNotFound from either propagates."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            origin_future = pool.submit(self.geocoder.geocode, origin)
            destination_future = pool.submit(self.geocoder.geocode, destination)
            return origin_future.result(), destination_future.result()

    def resolve(self, origin: str, destination: str) -> RoadDistance:
        from_coords, to_coords = self.geocode_pair(origin, destination)

        if self.router is not None:
            try:
                meters = self.router.driving_distance_m(from_coords, to_coords)
                return RoadDistance(meters / 1000, "route", from_coords, to_coords)
            except ProviderError as e:
                logger.warning("Routing %s -> %s failed, using straight-line estimate: %s",
                               origin, destination, e)

        straight = haversine_km(from_coords.lat, from_coords.lon, to_coords.lat, to_coords.lon)
        return RoadDistance(straight * self.road_factor, "haversine", from_coords, to_coords)

    def road_distance_km(self, origin: str, destination: str) -> float:
        return self.resolve(origin, destination).km
