"""
Price Resolver - Canonical unit price and line total for one order item.

Unit price resolution for products walks an ordered rule list (first match wins):
1. Stored size-adjusted price on the item (authoritative when > 0)
2. Catalog size pricing table entry for the item size
3. Catalog size variant matching the item size (case-insensitive)
4. Size multiplier (catalog multipliers, then the static table when enabled)
5. Catalog base price
The product discount is applied after the rule list. Bundles always use
the bundle price and are never discounted here.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from .errors import InvalidDiscount, InvalidQuantity
from .models import CatalogItemSnapshot, ItemKind, OrderLineItem, ResolvedPrice
from .money import ZERO, apply_discount_percent, round2, to_decimal

logger = logging.getLogger(__name__)


# Apparel letter sizes and numeric waist sizes
DEFAULT_SIZE_MULTIPLIERS: dict[str, Decimal] = {
    'XS': Decimal('0.9'),
    'S': Decimal('1.0'),
    'M': Decimal('1.1'),
    'L': Decimal('1.2'),
    'XL': Decimal('1.3'),
    'XXL': Decimal('1.4'),
    '28': Decimal('0.9'),
    '30': Decimal('1.0'),
    '32': Decimal('1.1'),
    '34': Decimal('1.2'),
    '36': Decimal('1.3'),
    '38': Decimal('1.4'),
    '40': Decimal('1.5'),
    '42': Decimal('1.6'),
}


@dataclass(frozen=True)
class UnitPriceRule:
    """One rung of the unit price resolution order."""
    name: str
    description: str
    apply: Callable[[OrderLineItem, CatalogItemSnapshot], Optional[Decimal]]


def _lookup_size(table: dict, size: str):
    """Look up a size label as given, then upper-case, then lower-case."""
    for key in (size, size.upper(), size.lower()):
        if key in table:
            return table[key]
    return None


def stored_size_adjusted_price(item: OrderLineItem, snapshot: CatalogItemSnapshot) -> Optional[Decimal]:
    if item.size_adjusted_price is not None and item.size_adjusted_price > 0:
        return to_decimal(item.size_adjusted_price)
    return None


def catalog_size_pricing(item: OrderLineItem, snapshot: CatalogItemSnapshot) -> Optional[Decimal]:
    if not item.size or not snapshot.size_pricing:
        return None
    price = _lookup_size(snapshot.size_pricing, item.size)
    return to_decimal(price) if price is not None else None


def catalog_size_variant(item: OrderLineItem, snapshot: CatalogItemSnapshot) -> Optional[Decimal]:
    if not item.size:
        return None
    wanted = item.size.strip().lower()
    for variant in snapshot.variants:
        if variant.size.strip().lower() == wanted and variant.price:
            return to_decimal(variant.price)
    return None


def size_multiplier(static_table: Optional[dict[str, Decimal]] = None):
    """Build the multiplier rung from catalog multipliers and an optional static table."""
    def apply(item: OrderLineItem, snapshot: CatalogItemSnapshot) -> Optional[Decimal]:
        if not item.size:
            return None
        multiplier = _lookup_size(snapshot.size_multipliers, item.size)
        if multiplier is None and static_table:
            multiplier = _lookup_size(static_table, item.size)
        if multiplier is None:
            return None
        return round2(to_decimal(snapshot.price) * to_decimal(multiplier))
    return apply


def base_price(item: OrderLineItem, snapshot: CatalogItemSnapshot) -> Optional[Decimal]:
    return to_decimal(snapshot.price)


def default_rules(static_multipliers: Optional[dict[str, Decimal]] = None) -> list[UnitPriceRule]:
    return [
        UnitPriceRule("size_adjusted", "Stored size-adjusted price", stored_size_adjusted_price),
        UnitPriceRule("size_pricing", "Catalog size price", catalog_size_pricing),
        UnitPriceRule("size_variant", "Catalog size variant price", catalog_size_variant),
        UnitPriceRule("size_multiplier", "Base price × size multiplier", size_multiplier(static_multipliers)),
        UnitPriceRule("base_price", "Catalog base price", base_price),
    ]


def validate_quantity(item: OrderLineItem) -> int:
    qty = item.quantity
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise InvalidQuantity(qty, item.item_id)
    return qty


class PriceResolver:
    """
    Resolves unit price and line total for one order item.

    Deterministic: the same item and snapshot always give the same result.

    The size multiplier rung only uses the catalog's own multipliers unless
    `static_multipliers` is passed. `from_settings` passes
    DEFAULT_SIZE_MULTIPLIERS when USE_STATIC_SIZE_MULTIPLIERS is true (off by
    default, so an unsized catalog entry keeps its base price for every size).
    """

    def __init__(
        self,
        rules: Optional[list[UnitPriceRule]] = None,
        static_multipliers: Optional[dict[str, Decimal]] = None,
    ):
        self.rules = rules if rules is not None else default_rules(static_multipliers)

    @classmethod
    def from_settings(cls, settings) -> 'PriceResolver':
        static = DEFAULT_SIZE_MULTIPLIERS if settings.use_static_size_multipliers else None
        return cls(static_multipliers=static)

    def resolve(self, item: OrderLineItem, snapshot: CatalogItemSnapshot) -> ResolvedPrice:
        """
        Resolve {unit_price, item_total} for an item.

        Raises InvalidQuantity before any computation if quantity < 1.
        """
        qty = validate_quantity(item)

        resolved = ResolvedPrice(item_id=item.item_id, kind=item.kind, quantity=qty)
        resolved.add_trace("Catalog Lookup", f"{snapshot.kind.value} snapshot", snapshot.catalog_id)

        if snapshot.kind != item.kind:
            resolved.add_warning(
                f"Item {item.item_id} is a {item.kind.value} but catalog id "
                f"{snapshot.catalog_id} is a {snapshot.kind.value}"
            )

        if item.kind == ItemKind.BUNDLE:
            self._resolve_bundle(resolved, snapshot)
        else:
            self._resolve_product(resolved, item, snapshot)

        resolved.item_total = round2(resolved.unit_price * qty)
        resolved.add_trace(
            "Extension", f"Quantity {qty} × {resolved.unit_price}", f"{resolved.item_total}"
        )
        return resolved

    def _resolve_bundle(self, resolved: ResolvedPrice, snapshot: CatalogItemSnapshot):
        resolved.unit_price = round2(snapshot.bundle_price)
        resolved.original_unit_price = round2(snapshot.original_price or snapshot.bundle_price)
        resolved.source = "bundle_price"
        resolved.add_trace("Price Resolution", "Bundle price (no size or discount)", f"{resolved.unit_price}")
        if snapshot.discount_percent:
            resolved.add_trace("Discount", f"Ignored {snapshot.discount_percent}% discount on bundle")

    def _resolve_product(self, resolved: ResolvedPrice, item: OrderLineItem, snapshot: CatalogItemSnapshot):
        for rule in self.rules:
            price = rule.apply(item, snapshot)
            if price is not None:
                resolved.source = rule.name
                resolved.original_unit_price = round2(price)
                resolved.add_trace("Price Resolution", rule.description, f"{resolved.original_unit_price}")
                break
        else:
            resolved.source = "none"
            resolved.original_unit_price = ZERO
            resolved.add_warning(f"No price rule matched item {item.item_id}")

        pct = to_decimal(snapshot.discount_percent or 0)
        try:
            resolved.unit_price = apply_discount_percent(resolved.original_unit_price, pct)
            resolved.discount_percent = pct
        except InvalidDiscount as e:
            logger.warning("%s on %s; using 0%% discount", e, snapshot.catalog_id)
            resolved.add_warning(f"{e}. Using 0% discount.")
            resolved.unit_price = apply_discount_percent(resolved.original_unit_price, 0)
            resolved.discount_percent = ZERO

        if resolved.discount_percent:
            resolved.add_trace(
                "Discount",
                f"{resolved.discount_percent}% off {resolved.original_unit_price}",
                f"{resolved.unit_price}",
            )
