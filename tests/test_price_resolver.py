from decimal import Decimal
from pathlib import Path

import pytest

from order_pricing.config.settings import Settings
from order_pricing.engine.errors import InvalidQuantity
from order_pricing.engine.models import CatalogItemSnapshot, ItemKind, OrderLineItem, SizeVariant
from order_pricing.engine.price_resolver import (
    DEFAULT_SIZE_MULTIPLIERS,
    PriceResolver,
    catalog_size_pricing,
    catalog_size_variant,
    size_multiplier,
    stored_size_adjusted_price,
)


@pytest.fixture
def resolver():
    return PriceResolver()


def product(catalog_id="P1", price="1000", discount="0", **kwargs):
    return CatalogItemSnapshot(catalog_id, ItemKind.PRODUCT, Decimal(price), Decimal(discount), **kwargs)


def line(qty=1, size=None, size_adjusted_price=None, kind=ItemKind.PRODUCT, catalog_id="P1"):
    return OrderLineItem("i1", kind, catalog_id, qty, size=size, size_adjusted_price=size_adjusted_price)


def test_discounted_product_without_size_pricing(resolver):
    """Base 1000, 10% off, size L with no size price or multiplier → 900.00 × 3."""
    result = resolver.resolve(line(qty=3, size="L"), product(discount="10"))
    assert result.unit_price == Decimal("900.00")
    assert result.item_total == Decimal("2700.00")
    assert result.source == "base_price"
    assert result.original_unit_price == Decimal("1000.00")
    assert result.savings == Decimal("300.00")


def test_bundle_price_ignores_discount(resolver):
    bundle = CatalogItemSnapshot("B1", ItemKind.BUNDLE, Decimal("1499.00"), Decimal("25"))
    result = resolver.resolve(line(qty=2, kind=ItemKind.BUNDLE, catalog_id="B1"), bundle)
    assert result.unit_price == Decimal("1499.00")
    assert result.item_total == Decimal("2998.00")
    assert result.discount_percent == Decimal("0")
    assert result.source == "bundle_price"


def test_bundle_skips_size_logic(resolver):
    bundle = CatalogItemSnapshot(
        "B1", ItemKind.BUNDLE, Decimal("1499.00"),
        size_pricing={"L": Decimal("10")}, size_multipliers={"L": Decimal("2")},
    )
    item = line(qty=1, size="L", size_adjusted_price=Decimal("5"), kind=ItemKind.BUNDLE, catalog_id="B1")
    assert resolver.resolve(item, bundle).unit_price == Decimal("1499.00")


def test_stored_size_adjusted_price_wins(resolver):
    snapshot = product(size_pricing={"L": Decimal("1100")}, discount="10")
    result = resolver.resolve(line(qty=2, size="L", size_adjusted_price=Decimal("1200")), snapshot)
    assert result.source == "size_adjusted"
    assert result.unit_price == Decimal("1080.00")
    assert result.item_total == Decimal("2160.00")


def test_zero_size_adjusted_price_is_ignored(resolver):
    snapshot = product(size_pricing={"L": Decimal("1100")})
    result = resolver.resolve(line(size="L", size_adjusted_price=Decimal("0")), snapshot)
    assert result.source == "size_pricing"
    assert result.unit_price == Decimal("1100.00")


def test_size_pricing_beats_variants_and_multipliers(resolver):
    snapshot = product(
        size_pricing={"XL": Decimal("1300")},
        variants=(SizeVariant("XL", Decimal("1400")),),
        size_multipliers={"XL": Decimal("2")},
    )
    assert resolver.resolve(line(size="XL"), snapshot).unit_price == Decimal("1300.00")


def test_size_variant_matches_case_insensitively(resolver):
    snapshot = product(variants=(SizeVariant("xl", Decimal("1400")),), size_multipliers={"XL": Decimal("2")})
    result = resolver.resolve(line(size="XL"), snapshot)
    assert result.source == "size_variant"
    assert result.unit_price == Decimal("1400.00")


def test_catalog_size_multiplier(resolver):
    snapshot = product(price="1200", size_multipliers={"L": Decimal("1.1")})
    result = resolver.resolve(line(qty=2, size="l"), snapshot)
    assert result.source == "size_multiplier"
    assert result.unit_price == Decimal("1320.00")
    assert result.item_total == Decimal("2640.00")


def test_static_multiplier_table_when_enabled():
    resolver = PriceResolver(static_multipliers=DEFAULT_SIZE_MULTIPLIERS)
    assert resolver.resolve(line(size="34"), product(price="1000")).unit_price == Decimal("1200.00")
    assert resolver.resolve(line(size="xs"), product(price="1000")).unit_price == Decimal("900.00")
    # Sizes outside the table fall through to the base price
    assert resolver.resolve(line(size="44"), product(price="1000")).source == "base_price"


def test_static_multiplier_table_disabled_by_default(resolver):
    assert resolver.resolve(line(size="34"), product(price="1000")).unit_price == Decimal("1000.00")


@pytest.mark.parametrize("enabled, unit_price", [(False, "1000.00"), (True, "1200.00")])
def test_from_settings_switches_static_multipliers(tmp_path, enabled, unit_price):
    settings = Settings(
        project_root=tmp_path,
        catalog_csv=tmp_path / "catalog.csv",
        orders_json=tmp_path / "orders.json",
        delivery_tiers_csv=Path("unused.csv"),
        use_static_size_multipliers=enabled,
    )
    resolver = PriceResolver.from_settings(settings)
    assert resolver.resolve(line(size="L"), product(price="1000")).unit_price == Decimal(unit_price)


def test_rungs_directly():
    snapshot = product(
        size_pricing={"M": Decimal("1050")},
        variants=(SizeVariant("S", Decimal("950")),),
        size_multipliers={"XL": Decimal("1.25")},
    )
    assert stored_size_adjusted_price(line(size_adjusted_price=Decimal("7")), snapshot) == Decimal("7")
    assert stored_size_adjusted_price(line(), snapshot) is None
    assert catalog_size_pricing(line(size="m"), snapshot) == Decimal("1050")
    assert catalog_size_pricing(line(), snapshot) is None
    assert catalog_size_variant(line(size="s"), snapshot) == Decimal("950")
    assert catalog_size_variant(line(size="M"), snapshot) is None
    assert size_multiplier()(line(size="XL"), snapshot) == Decimal("1250.00")
    assert size_multiplier()(line(size="M"), snapshot) is None


def test_invalid_discount_is_treated_as_zero(resolver, caplog):
    result = resolver.resolve(line(qty=2), product(discount="150"))
    assert result.unit_price == Decimal("1000.00")
    assert result.item_total == Decimal("2000.00")
    assert result.discount_percent == Decimal("0")
    assert any("Invalid discount" in w for w in result.warnings)
    assert "Invalid discount" in caplog.text


@pytest.mark.parametrize("qty", [0, -1, 2.5, True, None])
def test_invalid_quantity_fails(resolver, qty):
    with pytest.raises(InvalidQuantity) as exc:
        resolver.resolve(line(qty=qty), product())
    assert exc.value.item_id == "i1"


def test_item_total_is_rounded_extension(resolver):
    snapshot = product(price="33.335", discount="0")
    result = resolver.resolve(line(qty=3), snapshot)
    assert result.unit_price == Decimal("33.34")
    assert result.item_total == Decimal("100.02")


def test_resolution_is_deterministic(resolver):
    snapshot = product(price="749.50", discount="12.5", size_multipliers={"M": Decimal("1.05")})
    item = line(qty=7, size="M")
    first = resolver.resolve(item, snapshot)
    for _ in range(5):
        again = resolver.resolve(item, snapshot)
        assert (again.unit_price, again.item_total) == (first.unit_price, first.item_total)


def test_kind_mismatch_is_warned(resolver):
    result = resolver.resolve(line(kind=ItemKind.PRODUCT), CatalogItemSnapshot("P1", ItemKind.BUNDLE, Decimal("10")))
    assert result.warnings


def test_trace_records_each_step(resolver):
    result = resolver.resolve(line(qty=3, size="L"), product(discount="10"))
    steps = [t.step for t in result.trace]
    assert steps == ["Catalog Lookup", "Price Resolution", "Discount", "Extension"]
    assert "2700.00" in result.get_trace_text()
