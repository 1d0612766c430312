"""Custom exceptions for order pricing."""
from decimal import Decimal
from typing import Optional


class PricingError(Exception):
    """Base exception for all order pricing errors."""

    pass


class InvalidQuantity(PricingError):
    """Raised when a line item quantity is not a positive integer."""

    def __init__(self, quantity, item_id: Optional[str] = None):
        self.quantity = quantity
        self.item_id = item_id
        msg = f"Invalid quantity {quantity!r}"
        if item_id:
            msg = f"{msg} for item {item_id}"
        super().__init__(msg)


class InvalidDiscount(PricingError):
    """Raised when a discount percentage falls outside 0-100."""

    def __init__(self, percent: Decimal):
        self.percent = percent
        super().__init__(f"Invalid discount percentage: {percent}%")


class CatalogItemNotFound(PricingError):
    """Raised when the catalog has no snapshot for a product or bundle id."""

    def __init__(self, catalog_id: str, kind: Optional[str] = None):
        self.catalog_id = catalog_id
        self.kind = kind
        label = kind.lower() if kind else "catalog item"
        super().__init__(f"No {label} found with id {catalog_id}")


class NotAutoFixable(PricingError):
    """Raised when validation found internal errors that block automatic repair."""

    def __init__(self, order_id: str, errors: list[str]):
        self.order_id = order_id
        self.errors = list(errors)
        super().__init__(
            f"Order {order_id} needs manual review: {'; '.join(self.errors)}"
        )


class OrderNotFound(PricingError):
    """Raised when an order id doesn't exist in the store."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderConflict(PricingError):
    """Raised when an order changed between read and compare-and-swap write."""

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Order {order_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class LocationNotFound(PricingError):
    """Raised when no geocoding provider could resolve a place."""

    def __init__(self, place: str, reason: Optional[str] = None):
        self.place = place
        self.reason = reason
        msg = f"Location not found: {place}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class ProviderError(PricingError):
    """Raised on a transport-level or response failure from an external provider."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider} failed: {detail}")


class ProviderTimeout(ProviderError):
    """Raised when an external provider doesn't answer within the timeout."""

    def __init__(self, provider: str, timeout: float):
        self.timeout = timeout
        super().__init__(provider, f"timed out after {timeout:g}s")
