"""
Data models for order pricing.

Uses dataclasses for structured, type-safe data representation.
Amounts are Decimal with 2 fractional digits.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .money import ZERO, round2, to_decimal


class ItemKind(str, Enum):
    PRODUCT = "Product"
    BUNDLE = "Bundle"


class ItemStatus(str, Enum):
    ACTIVE = "Active"
    CANCEL_PENDING = "CancelPending"
    CANCELLED = "Cancelled"
    RETURN_PENDING = "ReturnPending"
    RETURNED = "Returned"


class DiscrepancyKind(str, Enum):
    ITEM_TOTAL = "ItemTotal"
    UNIT_PRICE = "UnitPrice"
    SUBTOTAL = "Subtotal"
    GRAND_TOTAL = "GrandTotal"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value)


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class SizeVariant:
    """A catalog size variant with its own absolute price."""
    size: str
    price: Decimal


@dataclass(frozen=True)
class CatalogItemSnapshot:
    """
    Immutable catalog reference data captured at lookup time.

    For products `price` is the base price; for bundles it is the final bundle price.
    """
    catalog_id: str
    kind: ItemKind
    price: Decimal
    discount_percent: Decimal = ZERO
    size_pricing: dict[str, Decimal] = field(default_factory=dict)
    size_multipliers: dict[str, Decimal] = field(default_factory=dict)
    variants: tuple[SizeVariant, ...] = ()
    original_price: Optional[Decimal] = None  # bundles: sum of component prices
    name: str = ""

    @property
    def bundle_price(self) -> Decimal:
        return self.price


@dataclass
class OrderLineItem:
    """One product-or-bundle row of an order."""
    item_id: str
    kind: ItemKind
    catalog_id: str
    quantity: int
    unit_price: Decimal = ZERO
    item_total: Decimal = ZERO
    size: Optional[str] = None
    size_adjusted_price: Optional[Decimal] = None
    status: ItemStatus = ItemStatus.ACTIVE
    name: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == ItemStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "kind": self.kind.value,
            "catalog_id": self.catalog_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "item_total": str(self.item_total),
            "size": self.size,
            "size_adjusted_price": (
                str(self.size_adjusted_price) if self.size_adjusted_price is not None else None
            ),
            "status": self.status.value,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'OrderLineItem':
        return cls(
            item_id=str(data["item_id"]),
            kind=ItemKind(data.get("kind", ItemKind.PRODUCT.value)),
            catalog_id=str(data["catalog_id"]),
            quantity=int(data["quantity"]),
            unit_price=to_decimal(data.get("unit_price", "0")),
            item_total=to_decimal(data.get("item_total", "0")),
            size=data.get("size") or None,
            size_adjusted_price=_optional_decimal(data.get("size_adjusted_price")),
            status=ItemStatus(data.get("status", ItemStatus.ACTIVE.value)),
            name=data.get("name", ""),
        )


@dataclass
class Order:
    """
    An order with its line items and stored totals.

    Invariant after any mutation: grand_total == subtotal + delivery_charge.
    `version` is bumped by the order store on every write.
    """
    order_id: str
    items: list[OrderLineItem]
    subtotal: Decimal = ZERO
    delivery_charge: Decimal = ZERO
    grand_total: Decimal = ZERO
    currency: str = "INR"
    created_at: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    pricing_fixed: bool = False
    version: int = 0

    def item(self, item_id: str) -> Optional[OrderLineItem]:
        for line in self.items:
            if line.item_id == item_id:
                return line
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "items": [line.to_dict() for line in self.items],
            "subtotal": str(self.subtotal),
            "delivery_charge": str(self.delivery_charge),
            "grand_total": str(self.grand_total),
            "currency": self.currency,
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "pricing_fixed": self.pricing_fixed,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Order':
        created = data.get("created_at")
        updated = data.get("last_updated")
        return cls(
            order_id=str(data["order_id"]),
            items=[OrderLineItem.from_dict(row) for row in data.get("items", [])],
            subtotal=round2(data.get("subtotal", "0")),
            delivery_charge=round2(data.get("delivery_charge", "0")),
            grand_total=round2(data.get("grand_total", "0")),
            currency=data.get("currency", "INR"),
            created_at=datetime.fromisoformat(created) if created else utcnow(),
            last_updated=datetime.fromisoformat(updated) if updated else utcnow(),
            pricing_fixed=bool(data.get("pricing_fixed", False)),
            version=int(data.get("version", 0)),
        )


@dataclass
class ResolvedPrice:
    """Canonical price of one line item with its resolution trace."""
    item_id: str
    kind: ItemKind
    quantity: int
    unit_price: Decimal = ZERO
    item_total: Decimal = ZERO
    original_unit_price: Decimal = ZERO
    discount_percent: Decimal = ZERO
    source: str = ""
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def savings(self) -> Decimal:
        return round2((self.original_unit_price - self.unit_price) * self.quantity)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this item."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this item."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class Discrepancy:
    """A recoverable mismatch between stored and recomputed pricing."""
    target: str  # line item id or "order"
    kind: DiscrepancyKind
    stored: Decimal
    calculated: Decimal

    @property
    def difference(self) -> Decimal:
        return abs(self.calculated - self.stored)


@dataclass
class ValidationReport:
    """Outcome of validating one order against the catalog."""
    order_id: str
    discrepancies: list[Discrepancy] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    calculated_subtotal: Decimal = ZERO
    expected: dict[str, ResolvedPrice] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.discrepancies and not self.errors

    @property
    def can_auto_fix(self) -> bool:
        return len(self.discrepancies) > 0 and len(self.errors) == 0


@dataclass
class Address:
    """Customer-supplied delivery address. Only `city` feeds distance calculation."""
    city: str
    address_line: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    mobile: str = ""


@dataclass
class DeliveryQuote:
    """Delivery charge for a destination, recomputed whenever the address changes."""
    normalized_city: Optional[str]
    distance_km: Optional[float]
    charge: Decimal
    same_city: bool = False
    distance_source: Optional[str] = None  # "same_city", "route" or "haversine"
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.distance_km is None
