#!/usr/bin/env python
"""
Order audit pipeline - validates stored orders and optionally repairs them.

Usage:
    python scripts/audit_orders.py
    python scripts/audit_orders.py --repair --limit 100 --report audit_report.json
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from order_pricing.audit.report import build_pricing_report
from order_pricing.services.pricing_service import PricingService


def main():
    parser = argparse.ArgumentParser(description="Audit stored order pricing against the catalog")
    parser.add_argument("--repair", action="store_true", help="Repair every auto-fixable order")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of orders to audit")
    parser.add_argument("--after", default=None, help="Resume after this order id")
    parser.add_argument("--exclude-inactive", action="store_true",
                        help="Leave cancelled/returned items out of the totals")
    parser.add_argument("--report", type=Path, default=None, help="Write the JSON report here")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("ORDER PRICING AUDIT")
    print("=" * 60)
    print()

    service = PricingService.from_settings()
    summary = service.audit(
        repair=args.repair,
        limit=args.limit,
        after=args.after,
        include_inactive=not args.exclude_inactive,
    )
    report = build_pricing_report(summary)

    print("Summary:")
    for key, value in report["summary"].items():
        print(f"  {key}: {value}")
    print()

    if report["top_issues"]:
        print("Top issues:")
        for issue in report["top_issues"]:
            print(f"  {issue['type']}: {issue['count']}")
        print()

    for recommendation in report["recommendations"]:
        print(f"  → {recommendation}")

    if args.report:
        args.report.write_text(json.dumps(report, indent=2), encoding="utf-8")
        print(f"\nReport written to {args.report}")

    unresolved = summary.invalid_orders - summary.fixed_orders
    sys.exit(1 if unresolved else 0)


if __name__ == "__main__":
    main()
