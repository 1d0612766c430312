"""
Delivery Charge Calculator - combines same-city detection, road distance and
order subtotal into a delivery quote.

The tier function is injected: any callable (subtotal, distance_km) -> charge.
Two are provided: a CSV-backed DeliveryTierTable and a FlatDeliveryCharge.
A quote never fails: any geocoding or distance failure degrades to a zero
charge with no distance, and the caller tells the customer the charge may be
recalculated at confirmation.
"""
import logging
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional, Union

import pandas as pd

from ..engine.errors import PricingError
from ..engine.models import Address, DeliveryQuote
from ..engine.money import ZERO, clamp_non_negative, round2, to_decimal
from .normalizer import AddressNormalizer
from .routing import DistanceResolver

logger = logging.getLogger(__name__)

TierFunction = Callable[[Decimal, float], Decimal]

RECALCULATE_NOTICE = "Unable to price delivery; the charge may be recalculated at confirmation."


class FlatDeliveryCharge:
    """Same charge for every order and distance."""

    def __init__(self, amount: Union[Decimal, int, str] = 100):
        self.amount = round2(amount)

    def __call__(self, subtotal: Decimal, distance_km: float) -> Decimal:
        return self.amount


class DeliveryTierTable:
    """
    Charge tiers keyed by distance bucket and order subtotal.

    Rows are matched in file order; the first row whose inclusive
    [min_km, max_km] and [min_subtotal, max_subtotal] ranges both contain the
    request wins. Blank bounds are open. No match means no charge.
    """

    COLUMNS = ['min_km', 'max_km', 'min_subtotal', 'max_subtotal', 'charge']

    def __init__(self, tiers: pd.DataFrame):
        missing = [c for c in self.COLUMNS if c not in tiers.columns]
        if missing:
            raise ValueError(f"Delivery tier table is missing columns: {', '.join(missing)}")

        df = tiers.copy()
        for col in ('min_km', 'min_subtotal'):
            df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0.0)
        for col in ('max_km', 'max_subtotal'):
            df[col] = pd.to_numeric(df[col], errors='coerce').fillna(float('inf'))
        df['charge'] = df['charge'].astype(str).str.strip()
        self.tiers = df.reset_index(drop=True)

    @classmethod
    def from_csv(cls, path: Path) -> 'DeliveryTierTable':
        if not Path(path).exists():
            raise FileNotFoundError(f"Delivery tier table not found at {path}")
        df = pd.read_csv(path, dtype=str).fillna('')
        df.columns = [c.strip() for c in df.columns]
        return cls(df)

    def match(self, subtotal: Decimal, distance_km: float) -> Optional[dict]:
        """Return the first matching tier row as a dict, or None."""
        total = float(subtotal)
        matches = self.tiers[
            (self.tiers['min_km'] <= distance_km) &
            (self.tiers['max_km'] >= distance_km) &
            (self.tiers['min_subtotal'] <= total) &
            (self.tiers['max_subtotal'] >= total)
        ]
        if matches.empty:
            return None
        return matches.iloc[0].to_dict()

    def __call__(self, subtotal: Decimal, distance_km: float) -> Decimal:
        row = self.match(subtotal, distance_km)
        if row is None:
            logger.warning("No delivery tier for subtotal %s at %.2f km; charging 0", subtotal, distance_km)
            return ZERO
        return round2(row['charge'] or 0)


def tier_function_from_settings(settings) -> TierFunction:
    if settings.delivery_flat_charge is not None:
        return FlatDeliveryCharge(settings.delivery_flat_charge)
    return DeliveryTierTable.from_csv(settings.delivery_tiers_csv)


class DeliveryChargeCalculator:
    """Quotes a delivery charge from an origin city to a customer address."""

    def __init__(
        self,
        distance_resolver: DistanceResolver,
        tiers: TierFunction,
        normalizer: Optional[AddressNormalizer] = None,
    ):
        self.distance_resolver = distance_resolver
        self.tiers = tiers
        self.normalizer = normalizer or AddressNormalizer()

    def _charge(self, subtotal: Decimal, distance_km: float) -> Decimal:
        return clamp_non_negative(round2(self.tiers(subtotal, distance_km)))

    def quote(self, origin_city: str, destination: Union[Address, str], order_subtotal) -> DeliveryQuote:
        """
        Quote delivery from origin_city to destination.

        Never raises for delivery problems: unknown cities, geocoding and routing
        failures all give charge 0 and distance None.
        """
        subtotal = to_decimal(order_subtotal)
        city_text = destination.city if isinstance(destination, Address) else destination

        destination_city = self.normalizer.normalize(city_text)
        if destination_city is None:
            logger.warning("Delivery quote without a destination city")
            return DeliveryQuote(normalized_city=None, distance_km=None, charge=ZERO,
                                 warning=RECALCULATE_NOTICE)

        origin = self.normalizer.normalize(origin_city)
        if destination_city.same_as(origin):
            return DeliveryQuote(
                normalized_city=destination_city.display,
                distance_km=0.0,
                charge=self._charge(subtotal, 0.0),
                same_city=True,
                distance_source="same_city",
            )

        try:
            distance = self.distance_resolver.resolve(
                origin.display if origin else origin_city, destination_city.display
            )
            charge = self._charge(subtotal, distance.km)
        except PricingError as e:
            logger.warning("Delivery quote to %s degraded: %s", destination_city.display, e)
            return DeliveryQuote(normalized_city=destination_city.display, distance_km=None,
                                 charge=ZERO, warning=RECALCULATE_NOTICE)

        return DeliveryQuote(
            normalized_city=destination_city.display,
            distance_km=round(distance.km, 2),
            charge=charge,
            distance_source=distance.source,
        )
