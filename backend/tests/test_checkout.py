"""Tests for checkout validation, order creation and the WhatsApp hand-off."""

from datetime import datetime
from urllib.parse import unquote

import pytest
from pydantic import ValidationError

from storefront.core.errors import ValidationFailedError
from storefront.models.menu import MenuItem
from storefront.models.order import DeliveryType, MonitorStatus, Order
from storefront.schemas.cart import CartLine, ItemSelections, MenuItemRef
from storefront.schemas.menu import PizzaSize
from storefront.schemas.order import CheckoutRequest
from storefront.schemas.settings import DeliveryZone
from storefront.services.cart_service import CartStore, DbCartStorage
from storefront.services.order_service import (
    OrderService,
    build_device_info,
    detect_browser,
    detect_os,
)
from storefront.services.whatsapp_service import WhatsAppService

# 2026-10-19 is a Monday; default hours are 11:00 - 22:00
OPEN_NOW = datetime(2026, 10, 19, 12, 0)
CLOSED_NOW = datetime(2026, 10, 19, 23, 30)

SALAD = MenuItemRef(id=7, number=7, name="Chefsalat", price=8.00, is_meat_selection=True)
PIZZA = MenuItemRef(
    id=20, number=20, name="Pizza Margherita", price=7.50, is_pizza=True,
    sizes=[PizzaSize(name="Groß", price=10.00, description="32cm")],
)

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def _checkout(**fields) -> CheckoutRequest:
    data = {
        "cart_id": "cart-1",
        "first_name": "Max",
        "last_name": "Muster",
        "phone": "01701234567",
    }
    data.update(fields)
    return CheckoutRequest(**data)


def _delivery(**fields) -> CheckoutRequest:
    data = {
        "order_type": "delivery",
        "delivery_zone": "lutter",
        "street": "Hauptstraße",
        "house_number": "5",
        "postcode": "38729",
    }
    data.update(fields)
    return _checkout(**data)


@pytest.fixture
def filled_cart(db_session) -> CartStore:
    cart = CartStore("cart-1", DbCartStorage(db_session))
    cart.add_item(SALAD, ItemSelections(selected_sauce="Hähnchen - Zaziki", selected_exclusions=["ohne Zwiebeln"]))
    return cart


# ============== Request Validation ==============

class TestCheckoutRequest:
    def test_delivery_needs_address(self):
        with pytest.raises(ValidationError) as exc_info:
            _checkout(order_type="delivery", delivery_zone="lutter")
        assert "Bei Lieferung sind Liefergebiet" in str(exc_info.value)

    def test_specific_time_needs_time(self):
        with pytest.raises(ValidationError):
            _checkout(delivery_time="specific")

    def test_time_format(self):
        with pytest.raises(ValidationError):
            _checkout(delivery_time="specific", specific_time="25:00")

    def test_short_names_rejected(self):
        with pytest.raises(ValidationError):
            _checkout(first_name="M")

    def test_derived_fields(self):
        request = _delivery()
        assert request.customer_name == "Max Muster"
        assert request.customer_address == "Hauptstraße 5, 38729"
        assert _checkout().customer_address == "Abholung"


# ============== Checkout ==============

class TestCheckout:
    def test_pickup_order(self, db_session, filled_cart, order_feed):
        events = []
        order_feed.subscribe(events.append)

        result = OrderService(db_session, order_feed).checkout(
            _checkout(), user_agent=IPHONE_UA, language="de-DE", ip_address="10.0.0.1", now=OPEN_NOW
        )

        assert result.subtotal == 8.00
        assert result.delivery_fee == 0.0
        assert result.total == 8.00
        assert result.whatsapp_url.startswith("https://wa.me/")

        order = db_session.get(Order, result.order_id)
        assert order.customer_name == "Max Muster"
        assert order.customer_address == "Abholung"
        assert order.delivery_type == DeliveryType.PICKUP
        assert order.monitor_status == MonitorStatus.NEW
        assert order.ip_address == "10.0.0.1"
        assert order.device_info["device_type"] == "mobile"
        assert order.device_info["os"] == "iOS"
        assert order.items[0]["selected_exclusions"] == ["ohne Zwiebeln"]

        assert [e.event_type for e in events] == ["INSERT"]
        assert CartStore("cart-1", DbCartStorage(db_session)).items == []

    def test_empty_cart(self, db_session):
        with pytest.raises(ValidationFailedError) as exc_info:
            OrderService(db_session).checkout(_checkout(), now=OPEN_NOW)
        assert exc_info.value.message == "Der Warenkorb ist leer"

    def test_asap_when_closed(self, db_session, filled_cart):
        with pytest.raises(ValidationFailedError):
            OrderService(db_session).checkout(_checkout(), now=CLOSED_NOW)
        assert len(filled_cart.items) == 1

    def test_preorder_when_closed(self, db_session, filled_cart):
        result = OrderService(db_session).checkout(
            _checkout(delivery_time="specific", specific_time="12:30"), now=CLOSED_NOW
        )
        assert db_session.get(Order, result.order_id).requested_time == "12:30"

    def test_delivery_minimum_order(self, db_session, filled_cart):
        with pytest.raises(ValidationFailedError) as exc_info:
            OrderService(db_session).checkout(_delivery(delivery_zone="ostlutter"), now=OPEN_NOW)
        assert exc_info.value.message == "Mindestbestellwert für Ostlutter: 20,00 €"

    def test_unknown_zone(self, db_session, filled_cart):
        with pytest.raises(ValidationFailedError) as exc_info:
            OrderService(db_session).checkout(_delivery(delivery_zone="atlantis"), now=OPEN_NOW)
        assert exc_info.value.message == "Unbekanntes Liefergebiet"

    def test_delivery_stores_zone_name(self, db_session, filled_cart):
        result = OrderService(db_session).checkout(_delivery(), now=OPEN_NOW)
        order = db_session.get(Order, result.order_id)
        assert order.delivery_type == DeliveryType.DELIVERY
        assert order.delivery_zone == "Lutter am Barenberge"
        assert order.customer_address == "Hauptstraße 5, 38729"

    def test_extras_are_charged(self, db_session):
        cart = CartStore("cart-1", DbCartStorage(db_session))
        cart.add_item(PIZZA, ItemSelections(selected_size=PIZZA.sizes[0], selected_extras=["Pilze", "Ei"]))
        result = OrderService(db_session).checkout(_checkout(), now=OPEN_NOW)
        assert result.subtotal == 12.00

    def test_order_count_incremented(self, db_session, menu):
        item = menu["chefsalat"]
        cart = CartStore("cart-1", DbCartStorage(db_session))
        ref = MenuItemRef.model_validate(item)
        cart.add_item(ref)
        cart.add_item(ref)

        OrderService(db_session).checkout(_checkout(), now=OPEN_NOW)

        assert db_session.get(MenuItem, item.id).order_count == 2


# ============== Device Detection ==============

class TestDeviceDetection:
    def test_iphone(self):
        info = build_device_info(IPHONE_UA, "de-DE")
        assert info.device_type == "mobile"
        assert info.os == "iOS"
        assert info.browser == "Safari"
        assert info.language == "de-DE"

    def test_desktop_firefox(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0"
        assert detect_browser(ua) == "Firefox"
        assert detect_os(ua) == "Windows"
        assert build_device_info(ua).device_type == "desktop"

    def test_android_before_linux(self):
        ua = "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120.0 Mobile Safari/537.36"
        assert detect_os(ua) == "Android"
        assert detect_browser(ua) == "Chrome"

    def test_empty_user_agent(self):
        info = build_device_info("")
        assert info.browser == "Unknown"
        assert info.os == "Unknown"


# ============== WhatsApp Message ==============

class TestWhatsAppMessage:
    @pytest.fixture
    def whatsapp(self) -> WhatsAppService:
        return WhatsAppService(phone="4915112345678", shop_name="Testshop", extra_price=1.0)

    def test_pickup_message(self, whatsapp):
        line = CartLine(
            menu_item=SALAD,
            quantity=1,
            selected_sauce="Hähnchen - Zaziki",
            selected_exclusions=["ohne Zwiebeln"],
        )
        message = whatsapp.build_order_message(_checkout(), [line], None, 8.0, 0.0, 8.0)
        assert message == (
            "🍕 *Neue Bestellung - Testshop*\n\n"
            "👤 *Kunde:* Max Muster\n"
            "📞 *Telefon:* 01701234567\n"
            "📦 *Art:* Abholung\n"
            "⏰ *Zeit:* So schnell wie möglich\n\n"
            "🛒 *Bestellung:*\n"
            "• 1x Nr. 7 Chefsalat - Soße: Hähnchen - Zaziki - Salat: ohne Zwiebeln = 8,00 €\n"
            "\n💰 *Zwischensumme:* 8,00 €\n"
            "💳 *Gesamtbetrag:* 8,00 €\n"
        )

    def test_delivery_message(self, whatsapp):
        zone = DeliveryZone(id="rhode", name="Rhode", zip_code="38729", min_order=20, delivery_fee=2.5)
        line = CartLine(
            menu_item=PIZZA,
            quantity=2,
            selected_size=PIZZA.sizes[0],
            selected_extras=["Pilze"],
        )
        request = _delivery(
            delivery_zone="rhode", delivery_time="specific", specific_time="18:30", note="Bitte klingeln"
        )
        message = whatsapp.build_order_message(request, [line], zone, 22.0, 2.5, 24.5)

        assert "📦 *Art:* Lieferung\n" in message
        assert "📍 *Adresse:* Hauptstraße 5, 38729\n" in message
        assert "🗺️ *Gebiet:* Rhode\n" in message
        assert "⏰ *Zeit:* Um 18:30 Uhr\n\n" in message
        assert "• 2x Nr. 20 Pizza Margherita (Groß - 32cm) - Extras: Pilze (+1,00€) = 22,00 €\n" in message
        assert "🚗 *Liefergebühr:* 2,50 €\n" in message
        assert "💳 *Gesamtbetrag:* 24,50 €\n" in message
        assert message.endswith("\n📝 *Anmerkung:* Bitte klingeln")

    def test_url_encoding(self, whatsapp):
        url = whatsapp.order_url("Hallo Welt & mehr")
        assert url == "https://wa.me/4915112345678?text=Hallo%20Welt%20%26%20mehr"
        assert unquote(url.split("text=", 1)[1]) == "Hallo Welt & mehr"
