"""Order and checkout schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from storefront.models.order import DeliveryType, MonitorStatus, OrderStatus
from storefront.schemas.cart import CartLine


class DeviceInfo(BaseModel):
    """Client metadata derived from the request headers."""

    user_agent: str = ""
    language: str = ""
    device_type: Literal["mobile", "desktop"] = "desktop"
    browser: str = "Unknown"
    os: str = "Unknown"


class CheckoutRequest(BaseModel):
    """Checkout form. Delivery needs a zone and a full address."""

    cart_id: str = Field(..., min_length=1, max_length=64)
    order_type: DeliveryType = DeliveryType.PICKUP
    delivery_zone: Optional[str] = None
    delivery_time: Literal["asap", "specific"] = "asap"
    specific_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=10, max_length=50)
    street: Optional[str] = None
    house_number: Optional[str] = None
    postcode: Optional[str] = None
    note: Optional[str] = Field(None, max_length=1000)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def validate_delivery_fields(self) -> "CheckoutRequest":
        if self.order_type == DeliveryType.DELIVERY:
            if not (self.delivery_zone and self.street and self.house_number and self.postcode):
                raise ValueError(
                    "Bei Lieferung sind Liefergebiet, Straße, Hausnummer und PLZ erforderlich"
                )
        if self.delivery_time == "specific" and not self.specific_time:
            raise ValueError("Bei spezifischer Zeit muss eine Uhrzeit angegeben werden")
        return self

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def customer_address(self) -> str:
        if self.order_type == DeliveryType.DELIVERY:
            return f"{self.street} {self.house_number}, {self.postcode}"
        return "Abholung"


class CheckoutResponse(BaseModel):
    order_id: str
    whatsapp_url: str
    subtotal: float
    delivery_fee: float
    total: float


class OrderResponse(BaseModel):
    """Mapped order row, also used as the monitor view."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_name: str
    customer_address: str
    customer_phone: str
    note: str = ""
    items: List[CartLine]
    total_amount: float
    created_at: datetime
    updated_at: Optional[datetime] = None
    device_info: Optional[DeviceInfo] = None
    ip_address: Optional[str] = None
    status: OrderStatus
    delivery_type: DeliveryType = DeliveryType.DELIVERY
    delivery_zone: str = "Unknown"
    requested_time: Optional[str] = None
    monitor_status: MonitorStatus = MonitorStatus.NEW


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
