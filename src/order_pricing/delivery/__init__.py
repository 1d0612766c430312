"""Delivery subpackage - address normalization, geocoding, routing and charge tiers."""
from .normalizer import AddressNormalizer, CanonicalCity
from .geocoding import GeocodeClient, GeocodeResult, NominatimProvider, OpenCageProvider
from .routing import DistanceResolver, OsrmProvider, haversine_km
from .charges import DeliveryChargeCalculator, DeliveryTierTable, FlatDeliveryCharge

__all__ = [
    'AddressNormalizer',
    'CanonicalCity',
    'GeocodeClient',
    'GeocodeResult',
    'NominatimProvider',
    'OpenCageProvider',
    'DistanceResolver',
    'OsrmProvider',
    'haversine_km',
    'DeliveryChargeCalculator',
    'DeliveryTierTable',
    'FlatDeliveryCharge',
]
