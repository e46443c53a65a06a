"""Seller orders: paginated cache plus the status-change write-through."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from bookstall.shared.core import events
from bookstall.shared.core.errors import ApiError
from bookstall.shared.core.event_bus import EventBus
from bookstall.shared.domain.orders.models import Order, OrderStatus
from bookstall.shared.domain.pagination.resource_store import PaginatedResourceStore
from bookstall.shared.domain.results import ActionResult
from bookstall.shared.infrastructure.api.client import ApiClient

logger = logging.getLogger(__name__)


class OrderStore(PaginatedResourceStore[Order]):
    name = "orders"
    endpoint = "/api/seller/orders"
    response_key = "orders"
    item_model = Order

    async def update_order_status(self, order_id: str, status: OrderStatus | str) -> bool:
        """Overwrite the cached status of one order.

        Only the status (and its timestamp) is touched; the next page-1 fetch
        is authoritative.
        """
        new_status = OrderStatus.parse(status)
        now = datetime.now(timezone.utc)
        changed = await self.mutate_local(
            lambda order: order.id == order_id,
            lambda order: order.model_copy(update={"status": new_status, "updated_at": now}),
        )
        if not changed:
            logger.debug(f"[orders] status update for uncached order {order_id}")
        return changed > 0


class OrderActions:
    """Write-through order mutations issued by the order screens."""

    def __init__(self, api: ApiClient, orders: OrderStore, event_bus: EventBus):
        self.api = api
        self.orders = orders
        self.event_bus = event_bus

    async def update_status(self, order_id: str, status: OrderStatus | str) -> ActionResult:
        """PATCH the order status, then mirror it in the cache on success."""
        try:
            new_status = OrderStatus.parse(status)
        except ValueError:
            raise ValueError(f"Unknown order status: {status!r}") from None

        try:
            await self.api.patch(
                f"/api/seller/orders/{order_id}/status", {"status": new_status.value}
            )
        except ApiError as exc:
            logger.error(f"Failed to update order {order_id} to {new_status.value}: {exc.message}")
            return ActionResult.failure(exc)

        await self.orders.update_order_status(order_id, new_status)
        logger.info(f"Order {order_id} status updated to {new_status.value}")
        await self.event_bus.publish(
            events.TOPIC_ORDER_STATUS_CHANGED,
            events.create_order_status_changed_event(order_id, new_status.value),
        )
        return ActionResult.success(self.orders.find(order_id))
