"""
Pricing Service - caller-facing facade over the pricing and delivery core.

Plain data in, data out: resolve_item_price, validate_order, repair_order,
quote_delivery and audit. No display concerns.
"""
import logging
from typing import Optional, Union

import requests

from ..audit.report import AuditSummary, audit_orders
from ..audit.repairer import OrderRepairer
from ..audit.validator import OrderValidator
from ..config.settings import Settings, get_settings
from ..data.catalog import CatalogLookup, load_catalog, snapshot_for
from ..data.order_store import JsonOrderStore, OrderStore
from ..delivery.charges import DeliveryChargeCalculator, tier_function_from_settings
from ..delivery.geocoding import GeocodeClient
from ..delivery.routing import DistanceResolver
from ..engine.models import Address, DeliveryQuote, Order, OrderLineItem, ResolvedPrice, ValidationReport
from ..engine.price_resolver import PriceResolver

logger = logging.getLogger(__name__)


class PricingService:
    """Wires catalog, order store, audit and delivery components together."""

    def __init__(
        self,
        catalog: CatalogLookup,
        store: OrderStore,
        delivery: DeliveryChargeCalculator,
        resolver: Optional[PriceResolver] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.store = store
        self.resolver = resolver or PriceResolver.from_settings(self.settings)
        self.validator = OrderValidator(self.resolver, tolerance=self.settings.price_tolerance)
        self.repairer = OrderRepairer(store, self.validator)
        self.delivery = delivery

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None,
                      session: Optional[requests.Session] = None) -> 'PricingService':
        """Build the full service stack from settings files and environment."""
        settings = settings or get_settings()
        geocoder = GeocodeClient.from_settings(settings, session=session)
        delivery = DeliveryChargeCalculator(
            DistanceResolver.from_settings(settings, geocoder, session=session),
            tier_function_from_settings(settings),
        )
        return cls(
            catalog=load_catalog(settings.catalog_csv),
            store=JsonOrderStore(settings.orders_json),
            delivery=delivery,
            settings=settings,
        )

    def resolve_item_price(self, item: OrderLineItem) -> ResolvedPrice:
        return self.resolver.resolve(item, snapshot_for(self.catalog, item))

    def validate_order(self, order: Union[Order, str], include_inactive: bool = True) -> ValidationReport:
        if isinstance(order, str):
            order = self.store.get(order)
        return self.validator.validate(order, self.catalog, include_inactive=include_inactive)

    def repair_order(self, order_id: str, include_inactive: bool = True) -> Order:
        return self.repairer.repair_by_id(order_id, self.catalog, include_inactive=include_inactive)

    def quote_delivery(self, destination: Union[Address, str], order_subtotal,
                       origin_city: Optional[str] = None) -> DeliveryQuote:
        return self.delivery.quote(origin_city or self.settings.origin_city, destination, order_subtotal)

    def audit(self, repair: bool = False, limit: Optional[int] = None,
              after: Optional[str] = None, include_inactive: bool = True) -> AuditSummary:
        orders = self.store.list_orders(after=after, limit=limit)
        return audit_orders(
            orders,
            self.catalog,
            validator=self.validator,
            repairer=self.repairer,
            repair=repair,
            include_inactive=include_inactive,
        )
