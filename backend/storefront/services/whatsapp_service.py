"""WhatsApp order hand-off.

Checkout ends with a ``https://wa.me/<phone>?text=<message>`` deep link the
client opens. The message is a deterministic plain-text order summary; there
is no delivery acknowledgement.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

from storefront.core.config import settings
from storefront.core.formatting import format_price
from storefront.models.order import DeliveryType
from storefront.schemas.cart import CartLine
from storefront.schemas.order import CheckoutRequest
from storefront.schemas.settings import DeliveryZone
from storefront.services.cart_service import line_total

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me"

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


class WhatsAppService:
    """Builds the order summary message and its deep link."""

    def __init__(
        self,
        phone: Optional[str] = None,
        shop_name: Optional[str] = None,
        extra_price: Optional[float] = None,
    ):
        self.phone = phone or settings.whatsapp_phone
        self.shop_name = shop_name or settings.shop_name
        self.extra_price = settings.extra_price if extra_price is None else extra_price

    def format_line(self, line: CartLine) -> str:
        text = f"{line.quantity}x Nr. {line.menu_item.number} {line.menu_item.name}"

        if line.selected_size:
            size = line.selected_size
            text += f" ({size.name} - {size.description})" if size.description else f" ({size.name})"
        if line.selected_pasta_type:
            text += f" - Nudelsorte: {line.selected_pasta_type}"
        if line.selected_sauce:
            text += f" - Soße: {line.selected_sauce}"
        if line.selected_exclusions:
            text += f" - Salat: {', '.join(line.selected_exclusions)}"
        if line.selected_side_dish:
            text += f" - Beilage: {line.selected_side_dish}"
        if line.selected_drink:
            text += f" - Getränk: {line.selected_drink}"
        if line.selected_ingredients:
            text += f" - Zutaten: {', '.join(line.selected_ingredients)}"
        if line.selected_extras:
            surcharge = format_price(len(line.selected_extras) * self.extra_price)
            text += f" - Extras: {', '.join(line.selected_extras)} (+{surcharge}€)"

        text += f" = {format_price(line_total(line, self.extra_price))} €"
        return text

    def build_order_message(
        self,
        checkout: CheckoutRequest,
        lines: List[CartLine],
        zone: Optional[DeliveryZone],
        subtotal: float,
        delivery_fee: float,
        total: float,
    ) -> str:
        is_delivery = checkout.order_type == DeliveryType.DELIVERY

        message = f"🍕 *Neue Bestellung - {self.shop_name}*\n\n"
        message += f"👤 *Kunde:* {checkout.customer_name}\n"
        message += f"📞 *Telefon:* {checkout.phone}\n"
        message += f"📦 *Art:* {'Lieferung' if is_delivery else 'Abholung'}\n"

        if is_delivery and zone is not None:
            message += f"📍 *Adresse:* {checkout.customer_address}\n"
            message += f"🗺️ *Gebiet:* {zone.name}\n"

        if checkout.delivery_time == "asap":
            message += "⏰ *Zeit:* So schnell wie möglich\n\n"
        else:
            message += f"⏰ *Zeit:* Um {checkout.specific_time} Uhr\n\n"

        message += "🛒 *Bestellung:*\n"
        for line in lines:
            message += f"• {self.format_line(line)}\n"

        message += f"\n💰 *Zwischensumme:* {format_price(subtotal)} €\n"
        if delivery_fee > 0:
            message += f"🚗 *Liefergebühr:* {format_price(delivery_fee)} €\n"
        message += f"💳 *Gesamtbetrag:* {format_price(total)} €\n"

        if checkout.note:
            message += f"\n📝 *Anmerkung:* {checkout.note}"

        return message

    def order_url(self, message: str) -> str:
        return f"{WHATSAPP_BASE_URL}/{self.phone}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"
