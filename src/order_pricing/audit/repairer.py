"""
Order Repairer - Rewrites stale item and order totals in one atomic write.

The repairer re-derives every value itself instead of trusting a caller's report,
so a report that went stale between validate and repair can't cause a bad write.
"""
import copy
import logging
from typing import Optional

from ..data.catalog import CatalogLookup
from ..data.order_store import OrderStore
from ..engine.errors import NotAutoFixable
from ..engine.models import Order, utcnow
from ..engine.money import ZERO, round2
from .validator import OrderValidator

logger = logging.getLogger(__name__)


class OrderRepairer:
    """Recomputes an order's pricing and writes it back with compare-and-swap."""

    def __init__(self, store: OrderStore, validator: Optional[OrderValidator] = None):
        self.store = store
        self.validator = validator or OrderValidator()

    def repaired_copy(self, order: Order, catalog: CatalogLookup, include_inactive: bool = True) -> Order:
        """
        Build the repaired order without writing it.

        Raises NotAutoFixable when validation finds errors (not just drift).
        """
        report = self.validator.validate(order, catalog, include_inactive=include_inactive)
        if report.errors:
            raise NotAutoFixable(order.order_id, report.errors)

        fixed = copy.deepcopy(order)
        subtotal = ZERO
        for item in fixed.items:
            expected = report.expected.get(item.item_id)
            if expected is None:
                # Excluded from reconciliation; left exactly as stored
                continue
            item.unit_price = expected.unit_price
            item.item_total = expected.item_total
            subtotal += expected.item_total

        # Shipping is never touched by repair
        fixed.subtotal = round2(subtotal)
        fixed.grand_total = round2(fixed.subtotal + fixed.delivery_charge)
        fixed.pricing_fixed = True
        fixed.last_updated = utcnow()
        return fixed

    def repair(self, order: Order, catalog: CatalogLookup, include_inactive: bool = True) -> Order:
        """
        Repair an order and persist it atomically.

        Either every item total and the order totals update together, or nothing
        is written (NotAutoFixable, OrderConflict or a store failure propagate and
        the stored order keeps its pre-repair state).
        """
        fixed = self.repaired_copy(order, catalog, include_inactive=include_inactive)
        try:
            stored = self.store.compare_and_swap(fixed, expected_version=order.version)
        except Exception:
            logger.error("Failed to write repaired order %s", order.order_id, exc_info=True)
            raise

        logger.info(
            "Repaired order %s: subtotal %s -> %s, grand total %s -> %s",
            order.order_id, order.subtotal, stored.subtotal, order.grand_total, stored.grand_total,
        )
        return stored

    def repair_by_id(self, order_id: str, catalog: CatalogLookup, include_inactive: bool = True) -> Order:
        """Read the latest stored order and repair it."""
        return self.repair(self.store.get(order_id), catalog, include_inactive=include_inactive)
