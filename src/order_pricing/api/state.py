"""Shared service instance for the API process."""
from functools import lru_cache

from ..services.pricing_service import PricingService


@lru_cache(maxsize=1)
def get_service() -> PricingService:
    """Build the pricing service once per process."""
    return PricingService.from_settings()
