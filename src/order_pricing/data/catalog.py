"""
Catalog lookup - produces typed CatalogItemSnapshot values at the data-access boundary.

Two sources:
- InMemoryCatalog: snapshots registered in code (tests, API callers)
- CsvCatalog: a catalog CSV exported from the store backoffice, loaded with pandas
"""
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

import pandas as pd

from ..engine.errors import CatalogItemNotFound
from ..engine.models import CatalogItemSnapshot, ItemKind, OrderLineItem, SizeVariant
from ..engine.money import ZERO, to_decimal

logger = logging.getLogger(__name__)


class CatalogLookup(Protocol):
    """Anything that can produce a snapshot for a product or bundle id."""

    def get_snapshot(self, kind: ItemKind, catalog_id: str) -> CatalogItemSnapshot:
        ...


def snapshot_for(catalog: CatalogLookup, item: OrderLineItem) -> CatalogItemSnapshot:
    """Fetch the snapshot that prices a line item."""
    return catalog.get_snapshot(item.kind, item.catalog_id)


class InMemoryCatalog:
    """Catalog backed by a dict of snapshots keyed by (kind, id)."""

    def __init__(self, snapshots: Iterable[CatalogItemSnapshot] = ()):
        self._items: dict[tuple[ItemKind, str], CatalogItemSnapshot] = {}
        for snapshot in snapshots:
            self.add(snapshot)

    def add(self, snapshot: CatalogItemSnapshot):
        self._items[(snapshot.kind, str(snapshot.catalog_id))] = snapshot

    def get_snapshot(self, kind: ItemKind, catalog_id: str) -> CatalogItemSnapshot:
        try:
            return self._items[(ItemKind(kind), str(catalog_id).strip())]
        except KeyError:
            raise CatalogItemNotFound(str(catalog_id), ItemKind(kind).value) from None

    def __len__(self) -> int:
        return len(self._items)


def _parse_json_cell(value, default):
    """Parse a JSON-encoded CSV cell; blank cells give the default."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    text = str(value).strip()
    if not text or text.lower() == 'nan':
        return default
    return json.loads(text)


def _optional_amount(value):
    if value is None or str(value).strip() in ('', 'nan'):
        return None
    return to_decimal(str(value).strip())


def snapshot_from_row(row: dict) -> CatalogItemSnapshot:
    """Build a snapshot from one catalog CSV row."""
    kind = ItemKind(str(row.get('kind') or ItemKind.PRODUCT.value).strip().title())
    discount = _optional_amount(row.get('discount'))

    size_pricing = {
        str(size): to_decimal(str(price))
        for size, price in _parse_json_cell(row.get('size_pricing'), {}).items()
    }
    size_multipliers = {
        str(size): to_decimal(str(mult))
        for size, mult in _parse_json_cell(row.get('size_multipliers'), {}).items()
    }
    variants = tuple(
        SizeVariant(size=str(v['size']), price=to_decimal(str(v['price'])))
        for v in _parse_json_cell(row.get('variants'), [])
        if v.get('size') is not None and v.get('price') is not None
    )

    return CatalogItemSnapshot(
        catalog_id=str(row['id']).strip(),
        kind=kind,
        price=to_decimal(str(row.get('price') or 0)),
        discount_percent=discount if discount is not None else ZERO,
        size_pricing=size_pricing,
        size_multipliers=size_multipliers,
        variants=variants,
        original_price=_optional_amount(row.get('original_price')),
        name=str(row.get('name') or ''),
    )


class CsvCatalog(InMemoryCatalog):
    """
    Catalog loaded from a CSV file.

    Columns: id, kind, name, price, discount, original_price,
    size_pricing (JSON object), size_multipliers (JSON object), variants (JSON list).
    """

    REQUIRED_COLUMNS = ('id', 'price')

    def __init__(self, csv_path: Path):
        super().__init__()
        self.csv_path = Path(csv_path)
        self.load()

    def load(self):
        """(Re)load all rows from disk."""
        if not self.csv_path.exists():
            raise FileNotFoundError(f"Catalog CSV not found at {self.csv_path}")

        df = pd.read_csv(self.csv_path, dtype=str, keep_default_na=False)
        df.columns = [c.strip() for c in df.columns]
        missing = [c for c in self.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Catalog CSV {self.csv_path} is missing columns: {', '.join(missing)}")

        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()
        df = df[df['id'] != '']

        self._items.clear()
        skipped = 0
        for row in df.to_dict(orient='records'):
            try:
                self.add(snapshot_from_row(row))
            except (ValueError, KeyError, ArithmeticError) as e:
                skipped += 1
                logger.warning("Skipping catalog row %s: %s", row.get('id'), e)

        logger.info("Loaded %d catalog items from %s (%d skipped)", len(self._items), self.csv_path, skipped)

    def reload_data(self):
        """Reload catalog from disk."""
        self.load()


def load_catalog(csv_path: Optional[Path]) -> InMemoryCatalog:
    """Load the CSV catalog when present, else an empty in-memory catalog."""
    if csv_path and Path(csv_path).exists():
        return CsvCatalog(csv_path)
    logger.warning("No catalog CSV at %s; starting with an empty catalog", csv_path)
    return InMemoryCatalog()
