"""Store settings persistence: load with bootstrap, save as a whole document."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import PersistenceError, log_service_error
from storefront.models.store_settings import STORE_ID, StoreSettingsRow
from storefront.schemas.settings import (
    AddressSettings,
    DaySchedule,
    DeliveryZone,
    StoreSettings,
    WeekSchedule,
)
from storefront.services.availability_service import local_now

logger = logging.getLogger(__name__)


def _weekday(open_: str, close: str) -> DaySchedule:
    return DaySchedule(is_open=True, open=open_, close=close)


DEFAULT_SCHEDULE = WeekSchedule(
    monday=_weekday("11:00", "22:00"),
    tuesday=_weekday("11:00", "22:00"),
    wednesday=_weekday("11:00", "22:00"),
    thursday=_weekday("11:00", "22:00"),
    friday=_weekday("11:00", "23:00"),
    saturday=_weekday("12:00", "23:00"),
    sunday=_weekday("12:00", "22:00"),
)

DEFAULT_ZONES = [
    DeliveryZone(id="lutter", name="Lutter am Barenberge", zip_code="38729", min_order=0),
    DeliveryZone(id="ostlutter", name="Ostlutter", zip_code="38729", min_order=20),
    DeliveryZone(id="wallmoden", name="Wallmoden", zip_code="38729", min_order=20),
    DeliveryZone(id="alt-wallmoden", name="Alt Wallmoden", zip_code="38729", min_order=20),
    DeliveryZone(id="neuwallmoden", name="Neuwallmoden", zip_code="38729", min_order=20),
    DeliveryZone(id="nauen", name="Nauen", zip_code="38729", min_order=20),
    DeliveryZone(id="hahausen", name="Hahausen", zip_code="38729", min_order=20),
    DeliveryZone(id="bodenstein", name="Bodenstein", zip_code="38729", min_order=20),
    DeliveryZone(id="rhode", name="Rhode", zip_code="38729", min_order=20),
    DeliveryZone(id="sehlde", name="Sehlde", zip_code="38729", min_order=20),
]

DEFAULT_ADDRESS = AddressSettings(
    street="Frankfurter Str. 7",
    city="Lutter am Barenberge",
    zip="38729",
    phone="+491781555888",
)


def default_store_settings() -> StoreSettings:
    """A fresh copy of the bootstrap settings."""
    return StoreSettings(
        is_open=True,
        is_delivery_available=True,
        is_pickup_available=True,
        schedule=DEFAULT_SCHEDULE.model_copy(deep=True),
        delivery_schedule=DEFAULT_SCHEDULE.model_copy(deep=True),
        address=DEFAULT_ADDRESS.model_copy(),
        delivery_zones=[zone.model_copy() for zone in DEFAULT_ZONES],
    )


def _row_to_settings(row: StoreSettingsRow) -> StoreSettings:
    return StoreSettings(
        is_open=row.is_open,
        is_delivery_available=row.is_delivery_available,
        is_pickup_available=row.is_pickup_available,
        paused_date_delivery=row.paused_date_delivery,
        paused_date_pickup=row.paused_date_pickup,
        schedule=row.schedule,
        delivery_schedule=row.delivery_schedule or DEFAULT_SCHEDULE.model_dump(),
        address=row.address,
        delivery_zones=row.delivery_zones if row.delivery_zones is not None
        else [zone.model_dump() for zone in DEFAULT_ZONES],
    )


def _apply_to_row(row: StoreSettingsRow, store: StoreSettings) -> None:
    row.is_open = store.is_open
    row.is_delivery_available = store.is_delivery_available
    row.is_pickup_available = store.is_pickup_available
    row.paused_date_delivery = store.paused_date_delivery
    row.paused_date_pickup = store.paused_date_pickup
    row.schedule = store.schedule.model_dump()
    row.delivery_schedule = store.delivery_schedule.model_dump()
    row.address = store.address.model_dump()
    row.delivery_zones = [zone.model_dump() for zone in store.delivery_zones]


def get_store_settings(db: Session) -> StoreSettings:
    """Load the settings document, creating it from defaults on first use.

    A failing database never blocks the storefront: errors are logged and the
    defaults are returned.
    """
    try:
        row = db.get(StoreSettingsRow, STORE_ID)
        if row is None:
            logger.info("No store settings found, bootstrapping defaults")
            defaults = default_store_settings()
            row = StoreSettingsRow(id=STORE_ID)
            _apply_to_row(row, defaults)
            db.add(row)
            db.commit()
            return defaults
        return _row_to_settings(row)
    except SQLAlchemyError as e:
        db.rollback()
        log_service_error("get_store_settings", e)
        return default_store_settings()


def stamp_pause_dates(store: StoreSettings, today: Optional[date] = None) -> StoreSettings:
    """Record when a channel was switched off; clear the marker when it is back on."""
    today = today or local_now().date()
    updates = {}

    if store.is_pickup_available:
        updates["paused_date_pickup"] = None
    elif store.paused_date_pickup is None:
        updates["paused_date_pickup"] = today

    if store.is_delivery_available:
        updates["paused_date_delivery"] = None
    elif store.paused_date_delivery is None:
        updates["paused_date_delivery"] = today

    return store.model_copy(update=updates)


def update_store_settings(db: Session, store: StoreSettings, today: Optional[date] = None) -> StoreSettings:
    """Upsert the whole settings document."""
    store = stamp_pause_dates(store, today)
    try:
        row = db.get(StoreSettingsRow, STORE_ID)
        if row is None:
            row = StoreSettingsRow(id=STORE_ID)
            db.add(row)
        _apply_to_row(row, store)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_service_error("update_store_settings", e)
        raise PersistenceError("Einstellungen konnten nicht gespeichert werden.")

    logger.info(
        f"Store settings saved: pickup={store.is_pickup_available} delivery={store.is_delivery_available}"
    )
    return store
