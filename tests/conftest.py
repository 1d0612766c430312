from decimal import Decimal

import pytest
import requests

from order_pricing.data.catalog import InMemoryCatalog
from order_pricing.data.order_store import InMemoryOrderStore
from order_pricing.delivery.geocoding import GeocodeResult
from order_pricing.delivery.routing import RoadDistance
from order_pricing.engine.models import (
    CatalogItemSnapshot,
    ItemKind,
    Order,
    OrderLineItem,
    SizeVariant,
)


class FakeResponse:
    def __init__(self, data, status_code: int = 200):
        self.data = data
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if isinstance(self.data, Exception):
            raise self.data
        return self.data


class FakeSession:
    """
    Stand-in for requests.Session.

    Routes are matched by URL substring; a route value is a FakeResponse,
    an exception to raise, or a callable (url, params) -> FakeResponse.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        for fragment, answer in self.routes.items():
            if fragment in url:
                if isinstance(answer, Exception):
                    raise answer
                if callable(answer):
                    return answer(url, params)
                return answer
        raise requests.ConnectionError(f"no route for {url}")

    def calls_to(self, fragment: str) -> list:
        return [c for c in self.calls if fragment in c["url"]]


@pytest.fixture
def catalog():
    return InMemoryCatalog([
        CatalogItemSnapshot("TSHIRT-001", ItemKind.PRODUCT, Decimal("1000"), Decimal("10")),
        CatalogItemSnapshot(
            "JEANS-032", ItemKind.PRODUCT, Decimal("1800"),
            size_pricing={"30": Decimal("1750"), "32": Decimal("1800"), "34": Decimal("1900")},
        ),
        CatalogItemSnapshot(
            "HOODIE-07", ItemKind.PRODUCT, Decimal("1500"), Decimal("20"),
            variants=(SizeVariant("M", Decimal("1500")), SizeVariant("XL", Decimal("1650"))),
        ),
        CatalogItemSnapshot(
            "SHIRT-110", ItemKind.PRODUCT, Decimal("1200"),
            size_multipliers={"L": Decimal("1.1"), "XL": Decimal("1.15")},
        ),
        CatalogItemSnapshot(
            "COMBO-01", ItemKind.BUNDLE, Decimal("1499.00"), Decimal("15"),
            original_price=Decimal("1999.00"),
        ),
    ])


def make_order(order_id="ORD-1", items=None, delivery_charge="100.00", **kwargs) -> Order:
    """Build an order whose stored totals are consistent with its stored items."""
    items = items if items is not None else [
        OrderLineItem("i1", ItemKind.PRODUCT, "TSHIRT-001", 3, Decimal("900.00"), Decimal("2700.00"), size="L"),
        OrderLineItem("i2", ItemKind.BUNDLE, "COMBO-01", 2, Decimal("1499.00"), Decimal("2998.00")),
    ]
    subtotal = sum((i.item_total for i in items), Decimal("0.00"))
    delivery = Decimal(delivery_charge)
    defaults = dict(subtotal=subtotal, delivery_charge=delivery, grand_total=subtotal + delivery)
    defaults.update(kwargs)
    return Order(order_id=order_id, items=items, **defaults)


@pytest.fixture
def order():
    return make_order()


@pytest.fixture
def store(order):
    return InMemoryOrderStore([order])


class FakeDistanceResolver:
    """Returns a fixed road distance, or raises the configured error."""

    def __init__(self, km=None, error=None):
        self.km = km
        self.error = error
        self.calls = []

    def resolve(self, origin, destination):
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        point = GeocodeResult(0.0, 0.0, destination, 9, "fake")
        return RoadDistance(self.km, "route", point, point)
