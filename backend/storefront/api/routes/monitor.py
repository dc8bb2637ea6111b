"""Order monitor routes for the staff screen.

The live list itself is pushed over ``/ws/monitor``; these endpoints cover
the initial load and the accept/close buttons.
"""

from typing import List

from fastapi import APIRouter, Request

from storefront.api.routes.orders import OrderFeed
from storefront.core.rate_limit import limiter
from storefront.core.rbac import RequireMonitor
from storefront.db.session import DbSession
from storefront.models.order import MonitorStatus
from storefront.schemas.order import OrderResponse
from storefront.services.order_monitor_service import sort_orders
from storefront.services.order_service import OrderService, order_to_response

router = APIRouter()


@router.get("/orders", response_model=List[OrderResponse])
@limiter.limit("120/minute")
def list_monitor_orders(request: Request, db: DbSession, current_user: RequireMonitor):
    """New orders first, then accepted, then closed; newest first within each."""
    return sort_orders([order_to_response(o) for o in OrderService(db).list_orders()])


@router.post("/orders/{order_id}/accept", response_model=OrderResponse)
@limiter.limit("60/minute")
def accept_order(request: Request, order_id: str, db: DbSession, feed: OrderFeed, current_user: RequireMonitor):
    return order_to_response(OrderService(db, feed).set_monitor_status(order_id, MonitorStatus.ACCEPTED))


@router.post("/orders/{order_id}/close", response_model=OrderResponse)
@limiter.limit("60/minute")
def close_order(request: Request, order_id: str, db: DbSession, feed: OrderFeed, current_user: RequireMonitor):
    return order_to_response(OrderService(db, feed).set_monitor_status(order_id, MonitorStatus.CLOSED))
