"""
Geocoding - resolve a place name to coordinates through an ordered provider chain.

The primary provider (OpenCage) is country-restricted and reports confidence;
the fallback (Nominatim) is less precise and gets a fixed low confidence.
Each provider is tried once; there are no retries beyond the chain.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from ..engine.errors import LocationNotFound, ProviderError
from .http import JsonHttpProvider

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 5

# ISO 3166-1 alpha-2 codes for the country names a delivery address carries
COUNTRY_CODES: dict[str, str] = {
    "india": "in",
    "sri lanka": "lk",
    "nepal": "np",
    "bangladesh": "bd",
    "bhutan": "bt",
    "pakistan": "pk",
    "maldives": "mv",
    "united arab emirates": "ae",
    "singapore": "sg",
    "malaysia": "my",
    "united kingdom": "gb",
    "united states": "us",
}


@dataclass(frozen=True)
class GeocodeResult:
    """Best match for a place query."""
    lat: float
    lon: float
    display_name: str
    confidence: int
    provider: str = ""


def build_query(place: str, country: str) -> str:
    return f"{place.strip()}, {country}" if country else place.strip()


def country_code_for(country: str) -> str:
    """
    ISO code restricting a search to a country hint.

    A two-letter hint is taken as a code already. An unknown name gives "" and
    the search runs unrestricted.
    """
    hint = (country or "").strip().lower()
    if len(hint) == 2 and hint.isalpha():
        return hint
    return COUNTRY_CODES.get(hint, "")


class GeocodeProvider(Protocol):
    name: str

    def geocode(self, place: str, country: str, country_code: str) -> Optional[GeocodeResult]:
        """Return the best match, None for an empty result set, or raise ProviderError."""
        ...


class OpenCageProvider(JsonHttpProvider):
    """OpenCage forward geocoding."""

    name = "opencage"

    def __init__(self, api_key: str, base_url: str = "https://api.opencagedata.com/geocode/v1/json",
                 timeout: float = 8.0, session: Optional[requests.Session] = None):
        super().__init__(base_url, timeout=timeout, session=session)
        self.api_key = api_key

    def geocode(self, place: str, country: str, country_code: str) -> Optional[GeocodeResult]:
        if not self.api_key:
            raise ProviderError(self.name, "OPENCAGE_API_KEY is not configured")
        params = {
            "q": build_query(place, country),
            "key": self.api_key,
            "limit": 1,
            "language": "en",
            "no_annotations": 1,
        }
        if country_code:
            params["countrycode"] = country_code
        data = self._get_json(self.base_url, params=params)
        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            return None
        best = results[0]
        geometry = best.get("geometry") or {}
        try:
            return GeocodeResult(
                lat=float(geometry["lat"]),
                lon=float(geometry["lng"]),
                display_name=best.get("formatted", place),
                confidence=int(best.get("confidence", FALLBACK_CONFIDENCE)),
                provider=self.name,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"malformed result: {e}") from e


class NominatimProvider(JsonHttpProvider):
    """OpenStreetMap Nominatim search (requires a User-Agent)."""

    name = "nominatim"

    def __init__(self, base_url: str = "https://nominatim.openstreetmap.org/search",
                 timeout: float = 8.0, session: Optional[requests.Session] = None,
                 user_agent: str = "order-pricing/1.0"):
        super().__init__(base_url, timeout=timeout, session=session, user_agent=user_agent)

    def geocode(self, place: str, country: str, country_code: str) -> Optional[GeocodeResult]:
        params = {
            "format": "json",
            "q": build_query(place, country),
            "limit": 1,
            "addressdetails": 1,
        }
        if country_code:
            params["countrycodes"] = country_code
        data = self._get_json(self.base_url, params=params)
        if not isinstance(data, list) or not data:
            return None
        best = data[0]
        try:
            return GeocodeResult(
                lat=float(best["lat"]),
                lon=float(best["lon"]),
                display_name=best.get("display_name", place),
                confidence=FALLBACK_CONFIDENCE,
                provider=self.name,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"malformed result: {e}") from e


class GeocodeClient:
    """Tries each provider in order; the first non-empty answer wins."""

    def __init__(self, providers: list[GeocodeProvider], country: str = "India", country_code: str = "in"):
        if not providers:
            raise ValueError("GeocodeClient needs at least one provider")
        self.providers = list(providers)
        self.country = country
        self.country_code = country_code

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> 'GeocodeClient':
        providers: list[GeocodeProvider] = []
        if settings.opencage_api_key:
            providers.append(OpenCageProvider(
                settings.opencage_api_key, settings.opencage_url,
                timeout=settings.provider_timeout, session=session,
            ))
        providers.append(NominatimProvider(
            settings.nominatim_url, timeout=settings.provider_timeout,
            session=session, user_agent=settings.user_agent,
        ))
        return cls(providers, country=settings.country, country_code=settings.country_code)

    def geocode(self, place: str, country: Optional[str] = None) -> GeocodeResult:
        """
        Resolve a place to coordinates.

        The country hint sets both the query suffix and the provider country
        restriction; without one the configured country applies.
        Raises LocationNotFound when every provider failed or found nothing.
        """
        if not place or not place.strip():
            raise LocationNotFound(place or "", "empty place name")
        if country and country.strip():
            country = country.strip()
            country_code = country_code_for(country)
        else:
            country, country_code = self.country, self.country_code

        failures = []
        for provider in self.providers:
            try:
                result = provider.geocode(place, country, country_code)
            except ProviderError as e:
                logger.warning("Geocoding %r with %s failed: %s", place, provider.name, e)
                failures.append(str(e))
                continue
            if result is not None:
                return result
            logger.warning("Geocoding %r with %s returned no results", place, provider.name)
            failures.append(f"{provider.name}: no results")

        raise LocationNotFound(place, "; ".join(failures))
