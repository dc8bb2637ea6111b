"""Checkout and order management routes."""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, status

from storefront.core.rate_limit import limiter
from storefront.core.rbac import RequireAdmin
from storefront.db.session import DbSession
from storefront.schemas.order import CheckoutRequest, CheckoutResponse, OrderResponse, OrderStatusUpdate
from storefront.services.order_events import OrderChangeFeed
from storefront.services.order_service import OrderService, order_to_response

logger = logging.getLogger(__name__)

router = APIRouter()


def get_order_feed(request: Request) -> OrderChangeFeed:
    """Change feed created in the application lifespan."""
    return request.app.state.order_feed


OrderFeed = Annotated[OrderChangeFeed, Depends(get_order_feed)]


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def checkout(request: Request, data: CheckoutRequest, db: DbSession, feed: OrderFeed):
    """Place the order and return the WhatsApp link that hands it to the shop."""
    client_ip = request.client.host if request.client else None
    return OrderService(db, feed).checkout(
        data,
        user_agent=request.headers.get("user-agent", ""),
        language=request.headers.get("accept-language", ""),
        ip_address=client_ip,
    )


@router.get("", response_model=List[OrderResponse])
@limiter.limit("60/minute")
def list_orders(request: Request, db: DbSession, current_user: RequireAdmin):
    return [order_to_response(o) for o in OrderService(db).list_orders()]


@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
def get_order(request: Request, order_id: str, db: DbSession, current_user: RequireAdmin):
    return order_to_response(OrderService(db).get_order(order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
@limiter.limit("30/minute")
def update_order_status(
    request: Request, order_id: str, data: OrderStatusUpdate, db: DbSession, feed: OrderFeed, current_user: RequireAdmin
):
    order = OrderService(db, feed).update_status(order_id, data.status)
    logger.info(f"Order {order_id} status -> {data.status.value} by {current_user.email}")
    return order_to_response(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_order(request: Request, order_id: str, db: DbSession, feed: OrderFeed, current_user: RequireAdmin):
    OrderService(db, feed).delete_order(order_id)
    logger.info(f"Order {order_id} deleted by {current_user.email}")
