import argparse
import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from order_pricing.config.settings import get_settings
from order_pricing.engine.models import Address
from order_pricing.services.pricing_service import PricingService


def debug():
    parser = argparse.ArgumentParser(description="Quote a delivery charge for one destination city")
    parser.add_argument("city", help="Destination city as typed by the customer")
    parser.add_argument("--subtotal", default="0", help="Order subtotal")
    parser.add_argument("--origin", default=None, help="Override the shipment origin city")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    settings = get_settings()
    service = PricingService.from_settings(settings)

    normalized = service.delivery.normalizer.normalize(args.city)
    print(f"Origin: {args.origin or settings.origin_city}")
    print(f"Destination: {args.city!r} -> {normalized.display if normalized else None}")

    quote = service.quote_delivery(Address(city=args.city), args.subtotal, args.origin)
    print("\nQuote:")
    print(f"  distance_km: {quote.distance_km} ({quote.distance_source})")
    print(f"  charge: {quote.charge}")
    if quote.warning:
        print(f"  warning: {quote.warning}")


if __name__ == "__main__":
    debug()
