import threading
from pathlib import Path

import pytest
import requests

from order_pricing.config.settings import Settings
from order_pricing.delivery.geocoding import (
    FALLBACK_CONFIDENCE,
    GeocodeClient,
    NominatimProvider,
    OpenCageProvider,
    country_code_for,
)
from order_pricing.engine.errors import LocationNotFound, ProviderError, ProviderTimeout

from conftest import FakeResponse, FakeSession

OPENCAGE_URL = "https://api.opencagedata.com/geocode/v1/json"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

OPENCAGE_HIT = FakeResponse({
    "results": [{
        "geometry": {"lat": 11.1085, "lng": 77.3411},
        "formatted": "Tiruppur, Tamil Nadu, India",
        "confidence": 7,
    }],
})
NOMINATIM_HIT = FakeResponse([{"lat": "11.0168", "lon": "76.9558", "display_name": "Coimbatore, Tamil Nadu, India"}])


def client_for(session):
    return GeocodeClient([
        OpenCageProvider("test-key", OPENCAGE_URL, session=session),
        NominatimProvider(NOMINATIM_URL, session=session),
    ])


def test_primary_provider_answers():
    session = FakeSession({"opencagedata": OPENCAGE_HIT, "nominatim": NOMINATIM_HIT})
    result = client_for(session).geocode("Tirupur")

    assert result.provider == "opencage"
    assert (result.lat, result.lon) == (11.1085, 77.3411)
    assert result.confidence == 7
    assert session.calls_to("nominatim") == []

    params = session.calls_to("opencagedata")[0]["params"]
    assert params["q"] == "Tirupur, India"
    assert params["countrycode"] == "in"
    assert params["key"] == "test-key"


@pytest.mark.parametrize("failure", [
    requests.Timeout("slow"),
    FakeResponse({}, status_code=500),
    FakeResponse({"results": []}),
    FakeResponse(ValueError("not json")),
], ids=["timeout", "http-500", "empty", "bad-json"])
def test_fallback_provider_used_when_primary_fails(failure, caplog):
    session = FakeSession({"opencagedata": failure, "nominatim": NOMINATIM_HIT})
    result = client_for(session).geocode("Kovai")

    assert result.provider == "nominatim"
    assert result.confidence == FALLBACK_CONFIDENCE
    assert result.lat == pytest.approx(11.0168)
    assert "opencage" in caplog.text


def test_every_provider_failing_raises_location_not_found():
    session = FakeSession({
        "opencagedata": requests.ConnectionError("down"),
        "nominatim": FakeResponse([]),
    })
    with pytest.raises(LocationNotFound) as exc:
        client_for(session).geocode("Atlantis")
    assert exc.value.place == "Atlantis"
    assert "nominatim: no results" in exc.value.reason


@pytest.mark.parametrize("place", ["", "   "])
def test_empty_place_is_not_looked_up(place):
    session = FakeSession({})
    with pytest.raises(LocationNotFound):
        client_for(session).geocode(place)
    assert session.calls == []


def test_provider_timeout_carries_timeout():
    session = FakeSession({"nominatim": requests.Timeout("slow")})
    provider = NominatimProvider(NOMINATIM_URL, timeout=3.5, session=session)
    with pytest.raises(ProviderTimeout) as exc:
        provider.geocode("Erode", "India", "in")
    assert exc.value.timeout == 3.5
    assert session.calls[0]["timeout"] == 3.5


def test_nominatim_sends_user_agent():
    session = FakeSession({"nominatim": NOMINATIM_HIT})
    NominatimProvider(NOMINATIM_URL, session=session, user_agent="shop-backend/2.0").geocode("Coimbatore", "India", "in")
    call = session.calls[0]
    assert call["headers"]["User-Agent"] == "shop-backend/2.0"
    assert call["params"]["countrycodes"] == "in"


def test_opencage_without_key_fails_over():
    session = FakeSession({"nominatim": NOMINATIM_HIT})
    client = GeocodeClient([OpenCageProvider("", session=session), NominatimProvider(session=session)])
    assert client.geocode("Coimbatore").provider == "nominatim"


def test_malformed_result_is_a_provider_error():
    session = FakeSession({"opencagedata": FakeResponse({"results": [{"geometry": {}}]})})
    with pytest.raises(ProviderError):
        OpenCageProvider("k", OPENCAGE_URL, session=session).geocode("Salem", "India", "in")


def test_from_settings_skips_opencage_without_key(tmp_path):
    settings = Settings(
        project_root=tmp_path,
        catalog_csv=tmp_path / "catalog.csv",
        orders_json=tmp_path / "orders.json",
        delivery_tiers_csv=Path("unused.csv"),
    )
    client = GeocodeClient.from_settings(settings)
    assert [p.name for p in client.providers] == ["nominatim"]

    settings.opencage_api_key = "abc"
    client = GeocodeClient.from_settings(settings)
    assert [p.name for p in client.providers] == ["opencage", "nominatim"]


def test_country_hint_restricts_both_providers():
    session = FakeSession({"opencagedata": FakeResponse({"results": []}), "nominatim": NOMINATIM_HIT})
    client_for(session).geocode("Colombo", "Sri Lanka")

    opencage = session.calls_to("opencagedata")[0]["params"]
    assert opencage["q"] == "Colombo, Sri Lanka"
    assert opencage["countrycode"] == "lk"
    assert session.calls_to("nominatim")[0]["params"]["countrycodes"] == "lk"


def test_unknown_country_hint_searches_unrestricted():
    session = FakeSession({"opencagedata": OPENCAGE_HIT})
    client_for(session).geocode("Springfield", "Freedonia")

    params = session.calls_to("opencagedata")[0]["params"]
    assert params["q"] == "Springfield, Freedonia"
    assert "countrycode" not in params


@pytest.mark.parametrize("hint, code", [
    ("India", "in"),
    ("  sri lanka ", "lk"),
    ("NP", "np"),
    ("Freedonia", ""),
    ("", ""),
])
def test_country_code_for(hint, code):
    assert country_code_for(hint) == code


def test_each_thread_gets_its_own_session():
    provider = NominatimProvider(NOMINATIM_URL)
    seen = []

    def grab():
        seen.append(provider.session)

    workers = [threading.Thread(target=grab) for _ in range(2)]
    for t in workers:
        t.start()
    for t in workers:
        t.join()

    assert provider.session is provider.session
    assert len({id(s) for s in seen + [provider.session]}) == 3


def test_injected_session_is_shared():
    session = FakeSession({})
    provider = NominatimProvider(NOMINATIM_URL, session=session)
    seen = []
    worker = threading.Thread(target=lambda: seen.append(provider.session))
    worker.start()
    worker.join()
    assert seen == [session]
    assert provider.session is session
