"""
Order stores - read orders and write them back atomically.

Writes use compare-and-swap on the order `version`: the caller passes the version
it read, the store rejects the write with OrderConflict if the stored version moved.
A per-order lock serializes writers of the same order; different orders never block
each other. Stores hand out copies, so callers can't mutate stored state.
"""
import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterator, Optional, Protocol

from ..engine.errors import OrderConflict, OrderNotFound
from ..engine.models import Order

logger = logging.getLogger(__name__)


class OrderStore(Protocol):
    def get(self, order_id: str) -> Order:
        ...

    def list_orders(self, after: Optional[str] = None, limit: Optional[int] = None) -> list[Order]:
        ...

    def save(self, order: Order) -> Order:
        ...

    def compare_and_swap(self, order: Order, expected_version: int) -> Order:
        ...


class InMemoryOrderStore:
    """Order store held in a dict."""

    def __init__(self, orders: Optional[list[Order]] = None):
        self._orders: dict[str, Order] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        for order in orders or []:
            self._orders[order.order_id] = copy.deepcopy(order)

    def _lock_for(self, order_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(order_id, threading.Lock())

    def get(self, order_id: str) -> Order:
        try:
            return copy.deepcopy(self._orders[order_id])
        except KeyError:
            raise OrderNotFound(order_id) from None

    def iter_ids(self) -> Iterator[str]:
        return iter(sorted(self._orders))

    def list_orders(self, after: Optional[str] = None, limit: Optional[int] = None) -> list[Order]:
        """List orders sorted by id, starting after the `after` cursor."""
        ids = [oid for oid in self.iter_ids() if after is None or oid > after]
        if limit is not None:
            ids = ids[:limit]
        return [self.get(oid) for oid in ids]

    def save(self, order: Order) -> Order:
        """Insert or overwrite an order unconditionally."""
        with self._lock_for(order.order_id):
            stored = copy.deepcopy(order)
            stored.version = order.version + 1
            self._commit(stored)
            return copy.deepcopy(stored)

    def compare_and_swap(self, order: Order, expected_version: int) -> Order:
        """Replace an order only if its stored version still equals expected_version."""
        with self._lock_for(order.order_id):
            current = self._orders.get(order.order_id)
            if current is None:
                raise OrderNotFound(order.order_id)
            if current.version != expected_version:
                raise OrderConflict(order.order_id, expected_version, current.version)
            stored = copy.deepcopy(order)
            stored.version = expected_version + 1
            self._commit(stored)
            return copy.deepcopy(stored)

    def _commit(self, order: Order):
        self._orders[order.order_id] = order

    def __len__(self) -> int:
        return len(self._orders)


class JsonOrderStore(InMemoryOrderStore):
    """
    Order store persisted to a single JSON file.

    Every commit rewrites the file via write-to-temp-then-rename, so a failed
    write leaves the previous file (and the in-memory state) untouched.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._file_lock = threading.Lock()
        if self.path.exists():
            self._load()

    def _load(self):
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        for row in data.get('orders', []):
            order = Order.from_dict(row)
            self._orders[order.order_id] = order
        logger.info("Loaded %d orders from %s", len(self._orders), self.path)

    def _commit(self, order: Order):
        with self._file_lock:
            snapshot = dict(self._orders)
            snapshot[order.order_id] = order
            self._write(snapshot)
            self._orders[order.order_id] = order

    def _write(self, orders: dict[str, Order]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {'orders': [orders[oid].to_dict() for oid in sorted(orders)]}
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".orders_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
