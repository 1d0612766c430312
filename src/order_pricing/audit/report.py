"""
Batch audit - validate (and optionally repair) many orders, then summarize.

Orders are validated independently in a thread pool; repairs go through the
store's per-order compare-and-swap, so different orders never contend.
"""
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..data.catalog import CatalogLookup
from ..engine.errors import PricingError
from ..engine.models import DiscrepancyKind, Order, ValidationReport
from .repairer import OrderRepairer
from .validator import OrderValidator

logger = logging.getLogger(__name__)


@dataclass
class OrderAuditResult:
    """Audit outcome for one order."""
    order_id: str
    report: ValidationReport
    fixed: bool = False
    repair_error: Optional[str] = None


@dataclass
class AuditSummary:
    """Counts and per-order failures for one audit run."""
    total_orders: int = 0
    valid_orders: int = 0
    invalid_orders: int = 0
    fixed_orders: int = 0
    results: list[OrderAuditResult] = field(default_factory=list)

    @property
    def failures(self) -> list[OrderAuditResult]:
        return [r for r in self.results if not r.report.is_valid]

    @property
    def error_rate(self) -> float:
        if not self.total_orders:
            return 0.0
        return self.invalid_orders / self.total_orders * 100


def audit_orders(
    orders: Iterable[Order],
    catalog: CatalogLookup,
    validator: Optional[OrderValidator] = None,
    repairer: Optional[OrderRepairer] = None,
    repair: bool = False,
    include_inactive: bool = True,
    max_workers: int = 8,
) -> AuditSummary:
    """
    Validate a batch of orders, repairing the auto-fixable ones when asked.

    Args:
        orders: Orders read from the store
        catalog: Catalog lookup used for every order
        repair: Repair each order whose report can be auto-fixed (needs repairer)
        max_workers: Thread pool size for the read-only validation pass
    """
    validator = validator or (repairer.validator if repairer else OrderValidator())
    if repair and repairer is None:
        raise ValueError("repair=True needs an OrderRepairer")

    orders = list(orders)

    def check(order: Order) -> OrderAuditResult:
        return OrderAuditResult(
            order_id=order.order_id,
            report=validator.validate(order, catalog, include_inactive=include_inactive),
        )

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(check, orders))

    summary = AuditSummary(total_orders=len(orders), results=results)
    by_id = {order.order_id: order for order in orders}

    for result in results:
        if result.report.is_valid:
            summary.valid_orders += 1
            continue
        summary.invalid_orders += 1

        if repair and result.report.can_auto_fix:
            try:
                repairer.repair(by_id[result.order_id], catalog, include_inactive=include_inactive)
                result.fixed = True
                summary.fixed_orders += 1
            except PricingError as e:
                result.repair_error = str(e)
                logger.warning("Could not repair order %s: %s", result.order_id, e)

    logger.info(
        "Audit complete: %d orders, %d valid, %d invalid, %d fixed",
        summary.total_orders, summary.valid_orders, summary.invalid_orders, summary.fixed_orders,
    )
    return summary


def _issue_type(message: str) -> str:
    text = message.lower()
    if 'unit price' in text:
        return 'unit_price_mismatch'
    if 'delivery' in text:
        return 'delivery_charge_issue'
    if 'subtotal' in text:
        return 'subtotal_mismatch'
    if 'duplicate item' in text:
        return 'duplicate_item_id'
    return 'other'


_DISCREPANCY_ISSUES = {
    DiscrepancyKind.ITEM_TOTAL: 'item_total_mismatch',
    DiscrepancyKind.UNIT_PRICE: 'unit_price_mismatch',
    DiscrepancyKind.SUBTOTAL: 'subtotal_mismatch',
    DiscrepancyKind.GRAND_TOTAL: 'grand_total_mismatch',
}


def analyze_common_issues(summary: AuditSummary, top: int = 5) -> list[dict]:
    """Count issue types across every failing order, most common first."""
    counts = Counter()
    for result in summary.failures:
        for message in result.report.errors:
            counts[_issue_type(message)] += 1
        for discrepancy in result.report.discrepancies:
            counts[_DISCREPANCY_ISSUES[discrepancy.kind]] += 1
    return [{"type": issue, "count": count} for issue, count in counts.most_common(top)]


def generate_recommendations(summary: AuditSummary) -> list[str]:
    recommendations = []
    if summary.invalid_orders > summary.fixed_orders:
        fixable = sum(1 for r in summary.failures if r.report.can_auto_fix and not r.fixed)
        if fixable:
            recommendations.append(f"Run the repair pass to correct {fixable} auto-fixable orders")
        manual = sum(1 for r in summary.failures if r.report.errors)
        if manual:
            recommendations.append(f"Review {manual} orders with internal inconsistencies manually")
    if summary.error_rate > 10:
        recommendations.append("High error rate detected - review catalog price edits since these orders were placed")
    return recommendations


def build_pricing_report(summary: AuditSummary) -> dict:
    """Build a JSON-ready pricing report from an audit summary."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total_orders": summary.total_orders,
            "valid_orders": summary.valid_orders,
            "invalid_orders": summary.invalid_orders,
            "fixed_orders": summary.fixed_orders,
            "error_rate": f"{summary.error_rate:.2f}%",
        },
        "top_issues": analyze_common_issues(summary),
        "recommendations": generate_recommendations(summary),
        "failures": [
            {
                "order_id": r.order_id,
                "errors": r.report.errors,
                "discrepancies": [
                    {
                        "target": d.target,
                        "kind": d.kind.value,
                        "stored": str(d.stored),
                        "calculated": str(d.calculated),
                        "difference": str(d.difference),
                    }
                    for d in r.report.discrepancies
                ],
                "fixed": r.fixed,
                "repair_error": r.repair_error,
            }
            for r in summary.failures
        ],
    }
