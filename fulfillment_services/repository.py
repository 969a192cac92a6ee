"""
fulfillment_services.repository -- Confirmed-write order snapshot.

Responsibility:
    Holds the in-memory snapshot that stats and rollups are computed from.
    The snapshot only changes on ``refresh()`` or after the service reports a
    confirmed store write, never ahead of persistence.

Invariants enforced:
    - Snapshot order follows the store's row order.
    - ``revision`` increases on every snapshot change; readers recompute
      aggregates when it moves.
"""

from __future__ import annotations

from fulfillment_kernel.domain.order import Order
from fulfillment_kernel.exceptions import OrderNotFoundError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_services.store import OrderStore

logger = get_logger("services.repository")


class OrderRepository:
    def __init__(self, store: OrderStore):
        self._store = store
        self._orders: list[Order] = []
        self._index: dict[str, int] = {}
        self.revision = 0

    @property
    def snapshot(self) -> tuple[Order, ...]:
        return tuple(self._orders)

    def refresh(self) -> tuple[Order, ...]:
        """Reload from the store.  StoreReadError leaves the snapshot as it was."""
        orders = self._store.list_orders()
        self._replace_all(orders)
        logger.debug("snapshot_refreshed", extra={"count": len(orders), "revision": self.revision})
        return self.snapshot

    def get(self, lpo_id: str) -> Order:
        position = self._index.get(lpo_id)
        if position is None:
            raise OrderNotFoundError(lpo_id)
        return self._orders[position]

    def confirm(self, order: Order) -> None:
        """Publish an order whose store write has been confirmed."""
        position = self._index.get(order.lpo_id)
        if position is None:
            self._orders.append(order)
            self._index[order.lpo_id] = len(self._orders) - 1
        else:
            self._orders[position] = order
        self.revision += 1

    def remove(self, lpo_id: str) -> None:
        self._replace_all([o for o in self._orders if o.lpo_id != lpo_id])

    def _replace_all(self, orders: list[Order]) -> None:
        self._orders = list(orders)
        self._index = {o.lpo_id: i for i, o in enumerate(self._orders)}
        self.revision += 1
