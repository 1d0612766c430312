"""
Order Validator - Recomputes every line item and compares against stored values.

Discrepancies are stale numbers that recomputation can fix. Errors are internal
inconsistencies in the stored data (or items that can't be priced at all) and
block automatic repair. The validator never writes.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import Optional

from ..data.catalog import CatalogLookup, snapshot_for
from ..engine.errors import CatalogItemNotFound, InvalidQuantity
from ..engine.models import Discrepancy, DiscrepancyKind, Order, ValidationReport
from ..engine.money import CENT, ZERO, round2, within_tolerance
from ..engine.price_resolver import PriceResolver

logger = logging.getLogger(__name__)

ORDER_TARGET = "order"


class OrderValidator:
    """Validates stored order pricing against a fresh resolution from the catalog."""

    def __init__(self, resolver: Optional[PriceResolver] = None, tolerance: Decimal = CENT):
        self.resolver = resolver or PriceResolver()
        self.tolerance = tolerance

    def validate(self, order: Order, catalog: CatalogLookup, include_inactive: bool = True) -> ValidationReport:
        """
        Validate one order.

        Args:
            order: Order as read from the store
            catalog: Lookup producing catalog snapshots
            include_inactive: Count cancelled/returned items in totals (default True)

        Returns:
            ValidationReport with discrepancies, errors and expected prices
        """
        report = ValidationReport(order_id=order.order_id)
        calculated_subtotal = ZERO
        unpriced = 0

        # Expected prices are keyed by item id, so a repeated id can't be reconciled
        counts = Counter(item.item_id for item in order.items)
        for item_id, count in counts.items():
            if count > 1:
                report.errors.append(f"Duplicate item id {item_id} appears on {count} lines")

        for item in order.items:
            if not include_inactive and not item.is_active:
                continue
            if counts[item.item_id] > 1:
                unpriced += 1
                continue

            try:
                snapshot = snapshot_for(catalog, item)
                expected = self.resolver.resolve(item, snapshot)
            except (InvalidQuantity, CatalogItemNotFound) as e:
                unpriced += 1
                report.errors.append(f"Item validation error: {e}")
                continue

            report.expected[item.item_id] = expected
            report.warnings.extend(expected.warnings)
            calculated_subtotal += expected.item_total

            if not within_tolerance(expected.item_total, item.item_total, self.tolerance):
                report.discrepancies.append(Discrepancy(
                    target=item.item_id,
                    kind=DiscrepancyKind.ITEM_TOTAL,
                    stored=item.item_total,
                    calculated=expected.item_total,
                ))

            if not within_tolerance(expected.unit_price, item.unit_price, self.tolerance):
                report.discrepancies.append(Discrepancy(
                    target=item.item_id,
                    kind=DiscrepancyKind.UNIT_PRICE,
                    stored=item.unit_price,
                    calculated=expected.unit_price,
                ))

            # Stored unit price must agree with the stored total it was extended into
            stored_unit = item.item_total / item.quantity
            if not within_tolerance(stored_unit, item.unit_price, self.tolerance):
                report.errors.append(
                    f"Unit price mismatch for item {item.item_id}: "
                    f"stored {item.unit_price} vs {round2(stored_unit)} from stored total"
                )

        report.calculated_subtotal = round2(calculated_subtotal)

        if unpriced == 0:
            self._check_order_totals(order, report)

        if order.delivery_charge < 0:
            report.errors.append(f"Negative delivery charge detected: {order.delivery_charge}")

        if not report.is_valid:
            logger.info(
                "Order %s: %d discrepancies, %d errors",
                order.order_id, len(report.discrepancies), len(report.errors),
            )
        return report

    def _check_order_totals(self, order: Order, report: ValidationReport):
        if not within_tolerance(report.calculated_subtotal, order.subtotal, self.tolerance):
            report.discrepancies.append(Discrepancy(
                target=ORDER_TARGET,
                kind=DiscrepancyKind.SUBTOTAL,
                stored=order.subtotal,
                calculated=report.calculated_subtotal,
            ))

        expected_grand = round2(report.calculated_subtotal + order.delivery_charge)
        if not within_tolerance(expected_grand, order.grand_total, self.tolerance):
            report.discrepancies.append(Discrepancy(
                target=ORDER_TARGET,
                kind=DiscrepancyKind.GRAND_TOTAL,
                stored=order.grand_total,
                calculated=expected_grand,
            ))
