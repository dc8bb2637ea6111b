"""
Store Settings Schemas
Weekly schedules, address, delivery zones and the resolved store status
"""
import re
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class DaySchedule(BaseModel):
    """Operating window for one weekday. ``open``/``close`` are ignored when closed."""
    is_open: bool
    open: str = "11:00"
    close: str = "22:00"

    @field_validator("open", "close")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("Zeit muss im Format HH:MM angegeben werden")
        return v


class WeekSchedule(BaseModel):
    """All seven weekdays, no sparse weeks."""
    monday: DaySchedule
    tuesday: DaySchedule
    wednesday: DaySchedule
    thursday: DaySchedule
    friday: DaySchedule
    saturday: DaySchedule
    sunday: DaySchedule

    def for_weekday(self, index: int) -> DaySchedule:
        """Schedule for a Python weekday index (Monday == 0), wrapping modulo 7."""
        return getattr(self, WEEKDAYS[index % 7])


class AddressSettings(BaseModel):
    street: str
    city: str
    zip: str
    phone: str


class DeliveryZone(BaseModel):
    """Schema for a delivery zone"""
    id: str
    name: str
    zip_code: str
    min_order: float = Field(0, ge=0)
    delivery_fee: float = Field(0, ge=0)


class StoreSettings(BaseModel):
    """The whole settings document, loaded and saved as one unit."""
    model_config = ConfigDict(from_attributes=True)

    is_open: bool = True
    is_delivery_available: bool = True
    is_pickup_available: bool = True
    paused_date_delivery: Optional[date] = None
    paused_date_pickup: Optional[date] = None
    schedule: WeekSchedule
    delivery_schedule: WeekSchedule
    address: AddressSettings
    delivery_zones: List[DeliveryZone] = Field(default_factory=list)

    def zone_by_name(self, name: Optional[str]) -> Optional[DeliveryZone]:
        if not name:
            return None
        for zone in self.delivery_zones:
            if zone.name == name:
                return zone
        return None


class StoreStatus(BaseModel):
    """Resolved availability at a point in time"""
    is_open: bool
    is_pickup_open: bool
    is_delivery_open: bool
    message: Optional[str] = None
    delivery_message: Optional[str] = None
    next_open: Optional[str] = None
    next_delivery_open: Optional[str] = None


class NextSlot(BaseModel):
    """Next bookable opening window for a pre-order"""
    day_label: str
    open: str
    close: str
    is_today: bool
