"""Duplicate-submission protection for order creation.

Every order placed with an idempotency token goes through
``OrderIdempotencyGuard``. The guard first performs an advisory lookup of
the token so an obvious retry is rejected before any catalog call or guest
record is made. That lookup is not atomic with the insert: two identical
requests can both pass it. The order store's uniqueness constraint on the
token is what actually decides, and the store reports a rejected insert as
the same ``DuplicateOrder`` error the advisory check raises.
"""

import logging
from typing import Optional

from .domain import DuplicateOrder, Order, OrderStorePort

logger = logging.getLogger("orders")


class OrderIdempotencyGuard:
    def __init__(self, orders: OrderStorePort):
        self.orders = orders

    def ensure_absent(self, token: Optional[str]) -> None:
        """Raise ``DuplicateOrder`` if an order already carries ``token``.

        A None or empty token disables the check.

        Raises:
            DuplicateOrder: With the existing order's tracking id.
        """
        if not token:
            return
        existing = self.orders.find_by_token(token)
        if existing is not None:
            logger.info(
                "duplicate order rejected by pre-check",
                extra={"idempotency_token": token, "tracking_id": str(existing.tracking_id)},
            )
            raise DuplicateOrder(token, existing.tracking_id)

    def place_if_absent(self, order: Order) -> Order:
        """Persist ``order`` unless its token has already been used.

        Args:
            order: Fully priced order, not yet persisted.

        Returns:
            Order: The stored order, with ``id`` and timestamps populated.

        Raises:
            DuplicateOrder: If the advisory check or the storage uniqueness
                constraint finds the token taken.
        """
        self.ensure_absent(order.idempotency_token)
        try:
            return self.orders.create(order)
        except DuplicateOrder as exc:
            logger.warning(
                "duplicate order rejected by storage constraint",
                extra={"idempotency_token": exc.token},
            )
            raise
