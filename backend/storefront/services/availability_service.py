"""
Store Availability Service
Resolves whether pickup and delivery are open right now from the weekly
schedules and the manual pause overrides, and finds the next opening slot.

All functions here are pure: they take the settings document and the current
local time and never touch the database. ``StoreStatusPoller`` is the only
stateful piece; it re-evaluates the status periodically and pushes changes.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Callable, Literal, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from storefront.core.config import settings as app_settings
from storefront.schemas.settings import (
    WEEKDAYS,
    DaySchedule,
    NextSlot,
    StoreSettings,
    StoreStatus,
    WeekSchedule,
)

logger = logging.getLogger(__name__)

GERMAN_DAY_NAMES = {
    "monday": "Montag",
    "tuesday": "Dienstag",
    "wednesday": "Mittwoch",
    "thursday": "Donnerstag",
    "friday": "Freitag",
    "saturday": "Samstag",
    "sunday": "Sonntag",
}

CLOSED_MESSAGE = "Momentan keine Bestellannahme"
SOON_LABEL = "Demnächst"
TOMORROW_LABEL = "Morgen"

ServiceType = Literal["pickup", "delivery"]


def local_now() -> datetime:
    """Current wall-clock time in the shop's timezone."""
    return datetime.now(ZoneInfo(app_settings.timezone))


def _to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def effective_availability(store: StoreSettings, today: date) -> Tuple[bool, bool]:
    """Return (pickup, delivery) availability after the day-boundary auto-reset.

    A manual pause only holds on the day it was set. An override of False with
    a pause date other than today counts as available again.
    """
    pickup = store.is_pickup_available
    delivery = store.is_delivery_available

    if not pickup and store.paused_date_pickup and store.paused_date_pickup != today:
        pickup = True
    if not delivery and store.paused_date_delivery and store.paused_date_delivery != today:
        delivery = True

    return pickup, delivery


def _scan_forward(schedule: WeekSchedule, weekday: int) -> Optional[Tuple[int, str, DaySchedule]]:
    """Find the first open day after ``weekday``. Gives up after one full week."""
    for offset in range(1, 8):
        day_key = WEEKDAYS[(weekday + offset) % 7]
        day = getattr(schedule, day_key)
        if day.is_open:
            return offset, day_key, day
    return None


def _next_open_label(schedule: WeekSchedule, weekday: int) -> str:
    found = _scan_forward(schedule, weekday)
    if found is None:
        return SOON_LABEL
    offset, day_key, day = found
    if offset == 1:
        return f"{TOMORROW_LABEL} {day.open} Uhr"
    return f"{GERMAN_DAY_NAMES[day_key]} {day.open} Uhr"


def _evaluate_day(schedule: WeekSchedule, now: datetime) -> Tuple[bool, Optional[str], Optional[str]]:
    """Check one week schedule against ``now``.

    Returns (is_open, message, next_open). Windows are same-day only, so a
    close time before the open time never yields an open state.
    """
    weekday = now.weekday()
    day_key = WEEKDAYS[weekday]
    day = schedule.for_weekday(weekday)

    if not day.is_open:
        return False, f"Heute ({GERMAN_DAY_NAMES[day_key]}) Ruhetag", _next_open_label(schedule, weekday)

    current = now.hour * 60 + now.minute
    hours_message = f"Heute geöffnet: {day.open} - {day.close} Uhr"

    if current < _to_minutes(day.open):
        return False, hours_message, f"Heute {day.open} Uhr"
    if current >= _to_minutes(day.close):
        return False, hours_message, _next_open_label(schedule, weekday)

    return True, None, None


def resolve_availability(store: StoreSettings, now: Optional[datetime] = None) -> StoreStatus:
    """Answer "is the shop open right now, and if not, when next".

    Delivery counts as open only when the delivery channel is available and
    the delivery schedule is open for today. This is stricter than the shop's
    earlier behaviour, where the schedule only produced the delivery message
    and ``is_delivery_open`` followed the availability flag alone.
    """
    now = now or local_now()
    pickup_available, delivery_available = effective_availability(store, now.date())

    if not pickup_available and not delivery_available:
        return StoreStatus(
            is_open=False,
            is_pickup_open=False,
            is_delivery_open=False,
            message=CLOSED_MESSAGE,
        )

    schedule_open, message, next_open = _evaluate_day(store.schedule, now)
    delivery_open, delivery_message, next_delivery_open = _evaluate_day(store.delivery_schedule, now)

    if not schedule_open:
        return StoreStatus(
            is_open=False,
            is_pickup_open=False,
            is_delivery_open=False,
            message=message,
            next_open=next_open,
            delivery_message=delivery_message,
            next_delivery_open=next_delivery_open,
        )

    return StoreStatus(
        is_open=True,
        is_pickup_open=pickup_available,
        is_delivery_open=delivery_available and delivery_open,
        delivery_message=delivery_message,
        next_delivery_open=next_delivery_open,
    )


def next_available_slot(
    store: StoreSettings,
    service_type: ServiceType = "pickup",
    now: Optional[datetime] = None,
) -> NextSlot:
    """Next opening window for pre-orders, today included if not yet open."""
    now = now or local_now()
    schedule = store.delivery_schedule if service_type == "delivery" else store.schedule
    weekday = now.weekday()
    today = schedule.for_weekday(weekday)

    if today.is_open and now.hour * 60 + now.minute < _to_minutes(today.open):
        return NextSlot(
            day_label=GERMAN_DAY_NAMES[WEEKDAYS[weekday]],
            open=today.open,
            close=today.close,
            is_today=True,
        )

    found = _scan_forward(schedule, weekday)
    if found is None:
        return NextSlot(day_label=SOON_LABEL, open="11:00", close="22:00", is_today=False)

    offset, day_key, day = found
    return NextSlot(
        day_label=TOMORROW_LABEL if offset == 1 else GERMAN_DAY_NAMES[day_key],
        open=day.open,
        close=day.close,
        is_today=False,
    )


class StoreStatusPoller:
    """
    Re-evaluates the store status on a fixed interval and publishes changes.
    Started and cancelled by the application lifespan.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        publish: Callable[[StoreStatus], Awaitable[None]],
        interval_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self._session_factory = session_factory
        self._publish = publish
        self._interval = interval_seconds or app_settings.status_poll_seconds
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.last_status: Optional[StoreStatus] = None

    def _load_settings(self) -> StoreSettings:
        from storefront.services.settings_service import get_store_settings

        db = self._session_factory()
        try:
            return get_store_settings(db)
        finally:
            db.close()

    async def check_once(self) -> StoreStatus:
        """Evaluate now; publish only when the result differs from the last one."""
        store = await run_in_threadpool(self._load_settings)
        status = resolve_availability(store, self._clock())
        if status != self.last_status:
            logger.info(
                f"Store status changed: open={status.is_open} pickup={status.is_pickup_open} "
                f"delivery={status.is_delivery_open}"
            )
            self.last_status = status
            await self._publish(status)
        return status

    async def _run(self):
        while True:
            try:
                await self.check_once()
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Store status poll error: {e}")
                await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
