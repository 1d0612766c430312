"""Engine subpackage - money helpers, data models and price resolution."""
from .price_resolver import PriceResolver
from .models import (
    CatalogItemSnapshot,
    Discrepancy,
    Order,
    OrderLineItem,
    ResolvedPrice,
    ValidationReport,
)

__all__ = [
    'PriceResolver',
    'CatalogItemSnapshot',
    'Discrepancy',
    'Order',
    'OrderLineItem',
    'ResolvedPrice',
    'ValidationReport',
]
