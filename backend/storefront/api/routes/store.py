"""Store hours and availability routes."""

from typing import List, Literal

from fastapi import APIRouter, Query, Request

from storefront.core.rate_limit import limiter
from storefront.db.session import DbSession
from storefront.schemas.settings import AddressSettings, DeliveryZone, NextSlot, StoreStatus
from storefront.services.availability_service import next_available_slot, resolve_availability
from storefront.services.settings_service import get_store_settings

router = APIRouter()


@router.get("/status", response_model=StoreStatus)
@limiter.limit("120/minute")
def get_store_status(request: Request, db: DbSession):
    """Whether pickup and delivery can be ordered right now."""
    return resolve_availability(get_store_settings(db))


@router.get("/next-slot", response_model=NextSlot)
@limiter.limit("60/minute")
def get_next_slot(
    request: Request,
    db: DbSession,
    order_type: Literal["pickup", "delivery"] = Query("pickup"),
):
    return next_available_slot(get_store_settings(db), order_type)


@router.get("/zones", response_model=List[DeliveryZone])
@limiter.limit("60/minute")
def list_delivery_zones(request: Request, db: DbSession):
    return get_store_settings(db).delivery_zones


@router.get("/address", response_model=AddressSettings)
@limiter.limit("60/minute")
def get_store_address(request: Request, db: DbSession):
    return get_store_settings(db).address
