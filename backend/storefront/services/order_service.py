"""
Order Service
Checkout, order persistence and status changes. Every committed change is
published on the order change feed so the monitor can react.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import (
    NotFoundError,
    PersistenceError,
    ValidationFailedError,
    log_service_error,
)
from storefront.core.formatting import format_price
from storefront.models.menu import MenuItem
from storefront.models.order import DeliveryType, MonitorStatus, Order, OrderStatus
from storefront.schemas.cart import CartLine
from storefront.schemas.order import CheckoutRequest, CheckoutResponse, DeviceInfo, OrderResponse
from storefront.services.availability_service import resolve_availability
from storefront.services.cart_service import CartStore, cart_subtotal, get_cart_storage
from storefront.services.order_events import ChangeEvent, OrderChangeFeed
from storefront.services.settings_service import get_store_settings
from storefront.services.whatsapp_service import WhatsAppService

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Fehler beim Speichern der Bestellung. Bitte versuchen Sie es erneut."

_MOBILE_UA = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)


# ==================== DEVICE DETECTION ====================

def detect_device_type(user_agent: str) -> str:
    return "mobile" if _MOBILE_UA.search(user_agent or "") else "desktop"


def detect_browser(user_agent: str) -> str:
    ua = user_agent or ""
    if "Firefox" in ua:
        return "Firefox"
    if "SamsungBrowser" in ua:
        return "Samsung Internet"
    if "Opera" in ua or "OPR" in ua:
        return "Opera"
    if "Trident" in ua:
        return "Internet Explorer"
    if "Edge" in ua or "Edg/" in ua:
        return "Edge"
    if "Chrome" in ua:
        return "Chrome"
    if "Safari" in ua:
        return "Safari"
    return "Unknown"


def detect_os(user_agent: str) -> str:
    ua = user_agent or ""
    # Mobile platforms first: their user agents also mention Linux or Mac OS X
    if "Android" in ua:
        return "Android"
    if "iPhone" in ua or "iPad" in ua or "iOS" in ua:
        return "iOS"
    if "Windows" in ua:
        return "Windows"
    if "Mac" in ua:
        return "macOS"
    if "Linux" in ua:
        return "Linux"
    return "Unknown"


def build_device_info(user_agent: str, language: str = "") -> DeviceInfo:
    return DeviceInfo(
        user_agent=user_agent or "",
        language=language or "",
        device_type=detect_device_type(user_agent),
        browser=detect_browser(user_agent),
        os=detect_os(user_agent),
    )


def order_to_response(order: Order) -> OrderResponse:
    """Single mapping from an order row to its API shape."""
    return OrderResponse(
        id=order.id,
        customer_name=order.customer_name,
        customer_address=order.customer_address,
        customer_phone=order.customer_phone,
        note=order.note or "",
        items=[CartLine.model_validate(item) for item in (order.items or [])],
        total_amount=float(order.total_amount),
        created_at=order.created_at,
        updated_at=order.updated_at,
        device_info=order.device_info,
        ip_address=order.ip_address,
        status=order.status,
        delivery_type=order.delivery_type or DeliveryType.DELIVERY,
        delivery_zone=order.delivery_zone or "Unknown",
        requested_time=order.requested_time,
        monitor_status=order.monitor_status or MonitorStatus.NEW,
    )


class OrderService:
    """Order writes and reads for checkout, admin and the monitor."""

    def __init__(self, db: Session, feed: Optional[OrderChangeFeed] = None):
        self.db = db
        self.feed = feed

    def _publish(self, event_type: str, new: Optional[Order] = None, old: Optional[dict] = None):
        if self.feed is None:
            return
        payload = order_to_response(new).model_dump(mode="json") if new is not None else None
        self.feed.publish(ChangeEvent(event_type=event_type, new=payload, old=old))

    def _commit(self, context: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_service_error(f"order_service.{context}", e)
            raise PersistenceError(SAVE_FAILED_MESSAGE)

    # ==================== CHECKOUT ====================

    def checkout(
        self,
        request: CheckoutRequest,
        user_agent: str = "",
        language: str = "",
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckoutResponse:
        """Validate the cart against hours and zone rules, store the order, build the hand-off link."""
        cart = CartStore(request.cart_id, get_cart_storage(self.db))
        lines = cart.items
        if not lines:
            raise ValidationFailedError("Der Warenkorb ist leer", field="cart_id")

        store = get_store_settings(self.db)
        is_delivery = request.order_type == DeliveryType.DELIVERY

        if request.delivery_time == "asap":
            status = resolve_availability(store, now)
            if not status.is_open:
                raise ValidationFailedError(
                    status.message or "Der Laden ist geschlossen. Bitte wählen Sie eine Uhrzeit.",
                    field="delivery_time",
                )
            if is_delivery and not status.is_delivery_open:
                raise ValidationFailedError("Lieferung ist momentan nicht verfügbar", field="order_type")
            if not is_delivery and not status.is_pickup_open:
                raise ValidationFailedError("Abholung ist momentan nicht verfügbar", field="order_type")

        zone = None
        if is_delivery:
            zone = next((z for z in store.delivery_zones if z.id == request.delivery_zone), None)
            if zone is None:
                raise ValidationFailedError("Unbekanntes Liefergebiet", field="delivery_zone")

        subtotal = cart_subtotal(lines)
        delivery_fee = zone.delivery_fee if zone else 0.0
        if zone is not None and subtotal < zone.min_order:
            raise ValidationFailedError(
                f"Mindestbestellwert für {zone.name}: {format_price(zone.min_order)} €",
                field="delivery_zone",
            )
        total = round(subtotal + delivery_fee, 2)

        order = self.create_order(
            lines=lines,
            customer_name=request.customer_name,
            customer_address=request.customer_address,
            customer_phone=request.phone,
            note=request.note or "",
            total_amount=total,
            device_info=build_device_info(user_agent, language),
            ip_address=ip_address,
            delivery_type=request.order_type,
            delivery_zone=zone.name if zone else None,
            requested_time=request.specific_time if request.delivery_time == "specific" else None,
        )

        whatsapp = WhatsAppService()
        message = whatsapp.build_order_message(request, lines, zone, subtotal, delivery_fee, total)
        cart.clear_cart()

        return CheckoutResponse(
            order_id=order.id,
            whatsapp_url=whatsapp.order_url(message),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=total,
        )

    def create_order(
        self,
        lines: List[CartLine],
        customer_name: str,
        customer_address: str,
        customer_phone: str,
        total_amount: float,
        note: str = "",
        device_info: Optional[DeviceInfo] = None,
        ip_address: Optional[str] = None,
        delivery_type: DeliveryType = DeliveryType.PICKUP,
        delivery_zone: Optional[str] = None,
        requested_time: Optional[str] = None,
    ) -> Order:
        order = Order(
            customer_name=customer_name,
            customer_address=customer_address,
            customer_phone=customer_phone,
            note=note,
            items=[line.model_dump(mode="json") for line in lines],
            total_amount=Decimal(str(total_amount)),
            device_info=device_info.model_dump() if device_info else None,
            ip_address=ip_address or "unknown",
            status=OrderStatus.PENDING,
            delivery_type=delivery_type,
            delivery_zone=delivery_zone,
            requested_time=requested_time,
            monitor_status=MonitorStatus.NEW,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(order)

        counts = {}
        for line in lines:
            counts[line.menu_item.id] = counts.get(line.menu_item.id, 0) + line.quantity
        for item in self.db.query(MenuItem).filter(MenuItem.id.in_(counts)).all():
            item.order_count = (item.order_count or 0) + counts[item.id]

        self._commit("create_order")
        self.db.refresh(order)
        logger.info(f"Order created: {order.id} ({len(lines)} lines, {format_price(total_amount)} EUR)")
        self._publish("INSERT", new=order)
        return order

    # ==================== READS ====================

    def list_orders(self) -> List[Order]:
        return self.db.query(Order).order_by(Order.created_at.desc()).all()

    def get_order(self, order_id: str) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Bestellung nicht gefunden")
        return order

    # ==================== STATUS CHANGES ====================

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        """Customer-facing status."""
        order = self.get_order(order_id)
        old = order_to_response(order).model_dump(mode="json")
        order.status = status
        self._commit("update_status")
        self.db.refresh(order)
        self._publish("UPDATE", new=order, old=old)
        return order

    def set_monitor_status(self, order_id: str, monitor_status: MonitorStatus) -> Order:
        """Staff workflow status. Any transition is allowed."""
        order = self.get_order(order_id)
        old = order_to_response(order).model_dump(mode="json")
        order.monitor_status = monitor_status
        order.updated_at = datetime.now(timezone.utc)
        self._commit("set_monitor_status")
        self.db.refresh(order)
        logger.info(f"Order {order_id} monitor status -> {monitor_status.value}")
        self._publish("UPDATE", new=order, old=old)
        return order

    def delete_order(self, order_id: str) -> None:
        order = self.get_order(order_id)
        old = order_to_response(order).model_dump(mode="json")
        self.db.delete(order)
        self._commit("delete_order")
        self._publish("DELETE", old=old)
