"""
Order Monitor Service
Live order list for the staff monitor screen.

On start the full order list is fetched once and every id in it is marked as
seen, so existing orders never raise an alert. After that each INSERT on the
change feed alerts once per unseen order whose monitor status is ``new``, and
every event of any kind triggers a full re-fetch. Overlapping re-fetches are
last-one-wins.
"""

import logging
import threading
from datetime import timezone
from typing import Callable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from storefront.core.errors import log_service_error
from storefront.models.order import MonitorStatus
from storefront.schemas.order import OrderResponse
from storefront.services.order_events import ChangeEvent, OrderChangeFeed
from storefront.services.order_service import OrderService, order_to_response

logger = logging.getLogger(__name__)

STATUS_RANK = {
    MonitorStatus.NEW: 0,
    MonitorStatus.ACCEPTED: 1,
    MonitorStatus.CLOSED: 2,
}

OrdersCallback = Callable[[List[OrderResponse]], None]
NewOrderCallback = Callable[[OrderResponse], None]


def _created_ts(order: OrderResponse) -> float:
    created = order.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


def sort_orders(orders: List[OrderResponse]) -> List[OrderResponse]:
    """Status rank ascending, newest first within a status."""
    return sorted(orders, key=lambda o: (STATUS_RANK[o.monitor_status], -_created_ts(o)))


class OrderMonitorService:
    """One listening session per monitor connection."""

    def __init__(self, session_factory: sessionmaker, feed: OrderChangeFeed):
        self._session_factory = session_factory
        self._feed = feed
        self._token: Optional[int] = None
        self._lock = threading.Lock()
        self._seen_order_ids: Set[str] = set()
        self._is_first_load = True
        self._on_orders_update: Optional[OrdersCallback] = None
        self._on_new_order: Optional[NewOrderCallback] = None

    @property
    def is_listening(self) -> bool:
        return self._token is not None

    @property
    def seen_order_ids(self) -> Set[str]:
        with self._lock:
            return set(self._seen_order_ids)

    def fetch_orders(self) -> List[OrderResponse]:
        """All orders, sorted for display."""
        db = self._session_factory()
        try:
            orders = [order_to_response(o) for o in OrderService(db).list_orders()]
        finally:
            db.close()
        return sort_orders(orders)

    def _refresh(self):
        try:
            orders = self.fetch_orders()
        except SQLAlchemyError as e:
            # Keep showing the last list; the next event retries
            log_service_error("order_monitor.fetch_orders", e)
            return

        with self._lock:
            first_load = self._is_first_load
            if first_load:
                self._seen_order_ids.update(o.id for o in orders)
                self._is_first_load = False
        if first_load:
            logger.info(f"Initial orders loaded ({len(orders)}). New order alerts active.")

        if self._on_orders_update is not None:
            self._on_orders_update(orders)

    def _handle_event(self, event: ChangeEvent):
        if event.event_type == "INSERT" and event.new:
            order = OrderResponse.model_validate(event.new)
            # Check and mark in one step; feed callbacks arrive on several threads
            with self._lock:
                unseen = order.id not in self._seen_order_ids
                self._seen_order_ids.add(order.id)
            if unseen and order.monitor_status == MonitorStatus.NEW and self._on_new_order is not None:
                self._on_new_order(order)
        self._refresh()

    def start_listening(self, on_orders_update: OrdersCallback, on_new_order: NewOrderCallback):
        if self.is_listening:
            self.stop_listening()
        self._on_orders_update = on_orders_update
        self._on_new_order = on_new_order
        self._refresh()
        self._token = self._feed.subscribe(self._handle_event)

    def stop_listening(self):
        """Unsubscribe and forget seen orders so a restart is a fresh session."""
        if self._token is not None:
            self._feed.unsubscribe(self._token)
            self._token = None
        with self._lock:
            self._seen_order_ids.clear()
            self._is_first_load = True
        self._on_orders_update = None
        self._on_new_order = None

    def update_order_status(self, order_id: str, status: MonitorStatus) -> OrderResponse:
        db = self._session_factory()
        try:
            order = OrderService(db, self._feed).set_monitor_status(order_id, status)
            return order_to_response(order)
        finally:
            db.close()

    def accept_order(self, order_id: str) -> OrderResponse:
        return self.update_order_status(order_id, MonitorStatus.ACCEPTED)

    def close_order(self, order_id: str) -> OrderResponse:
        return self.update_order_status(order_id, MonitorStatus.CLOSED)
