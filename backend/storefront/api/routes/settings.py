"""Store settings admin routes."""

import logging

from fastapi import APIRouter, Request

from storefront.core.rate_limit import limiter
from storefront.core.rbac import RequireAdmin
from storefront.db.session import DbSession
from storefront.schemas.settings import StoreSettings
from storefront.services.settings_service import get_store_settings, update_store_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=StoreSettings)
@limiter.limit("60/minute")
def read_settings(request: Request, db: DbSession, current_user: RequireAdmin):
    return get_store_settings(db)


@router.put("", response_model=StoreSettings)
@limiter.limit("30/minute")
def save_settings(request: Request, data: StoreSettings, db: DbSession, current_user: RequireAdmin):
    """Replace the whole settings document. Pause dates are stamped server-side."""
    logger.info(f"Store settings updated by {current_user.email}")
    return update_store_settings(db, data)
