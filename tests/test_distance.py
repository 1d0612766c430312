import math

import pytest
import requests

from order_pricing.delivery.geocoding import GeocodeResult
from order_pricing.delivery.routing import (
    EARTH_RADIUS_KM,
    ROAD_FACTOR,
    DistanceResolver,
    OsrmProvider,
    haversine_km,
)
from order_pricing.engine.errors import LocationNotFound, ProviderError

from conftest import FakeResponse, FakeSession

OSRM_URL = "https://router.project-osrm.org/route/v1/driving"


class FakeGeocoder:
    """Resolves a fixed set of place names."""

    def __init__(self, places):
        self.places = places
        self.queries = []

    def geocode(self, place, country=None):
        self.queries.append(place)
        if place not in self.places:
            raise LocationNotFound(place, "not in fixture")
        lat, lon = self.places[place]
        return GeocodeResult(lat, lon, place, 9, "fake")


@pytest.fixture
def geocoder():
    return FakeGeocoder({
        "Tirupur": (11.1085, 77.3411),
        "Coimbatore": (11.0168, 76.9558),
        "North Pole": (90.0, 0.0),
    })


def test_haversine_known_distances():
    one_degree = EARTH_RADIUS_KM * math.pi / 180
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(one_degree)
    assert haversine_km(0.0, 0.0, 0.0, 90.0) == pytest.approx(EARTH_RADIUS_KM * math.pi / 2)
    assert haversine_km(11.1085, 77.3411, 11.1085, 77.3411) == 0.0


def test_haversine_is_symmetric():
    assert haversine_km(11.1085, 77.3411, 11.0168, 76.9558) == pytest.approx(
        haversine_km(11.0168, 76.9558, 11.1085, 77.3411)
    )


def test_without_router_distance_is_scaled_great_circle(geocoder):
    resolver = DistanceResolver(geocoder, router=None)
    distance = resolver.resolve("Tirupur", "Coimbatore")

    straight = haversine_km(11.1085, 77.3411, 11.0168, 76.9558)
    assert distance.source == "haversine"
    assert distance.km == pytest.approx(straight * ROAD_FACTOR)
    assert sorted(geocoder.queries) == ["Coimbatore", "Tirupur"]


def test_route_distance_in_km(geocoder):
    session = FakeSession({"project-osrm": FakeResponse({"code": "Ok", "routes": [{"distance": 52340.0}]})})
    resolver = DistanceResolver(geocoder, OsrmProvider(OSRM_URL, session=session))

    distance = resolver.resolve("Tirupur", "Coimbatore")
    assert distance.source == "route"
    assert distance.km == pytest.approx(52.34)
    assert resolver.road_distance_km("Tirupur", "Coimbatore") == pytest.approx(52.34)

    call = session.calls[0]
    assert call["url"] == f"{OSRM_URL}/77.3411,11.1085;76.9558,11.0168"
    assert call["params"] == {"overview": "false", "alternatives": "false", "steps": "false"}


@pytest.mark.parametrize("answer", [
    requests.Timeout("slow"),
    FakeResponse({"code": "NoRoute", "routes": []}),
    FakeResponse({}, status_code=502),
], ids=["timeout", "no-route", "http-502"])
def test_routing_failure_falls_back_to_great_circle(geocoder, answer, caplog):
    session = FakeSession({"project-osrm": answer})
    resolver = DistanceResolver(geocoder, OsrmProvider(OSRM_URL, session=session), road_factor=1.5)

    distance = resolver.resolve("Tirupur", "North Pole")
    assert distance.source == "haversine"
    assert distance.km == pytest.approx(haversine_km(11.1085, 77.3411, 90.0, 0.0) * 1.5)
    assert "Routing Tirupur -> North Pole failed" in caplog.text


def test_no_route_is_a_provider_error(geocoder):
    session = FakeSession({"project-osrm": FakeResponse({"code": "NoRoute", "routes": []})})
    osrm = OsrmProvider(OSRM_URL, session=session)
    origin = geocoder.geocode("Tirupur")
    with pytest.raises(ProviderError, match="NoRoute"):
        osrm.driving_distance_m(origin, origin)


def test_unknown_place_propagates(geocoder):
    resolver = DistanceResolver(geocoder)
    with pytest.raises(LocationNotFound):
        resolver.resolve("Tirupur", "Atlantis")
