"""FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.routes import api_router
from storefront.core.config import settings
from storefront.core.errors import StorefrontError
from storefront.core.rate_limit import limiter
from storefront.core.rbac import ROLE_HIERARCHY, TokenData, UserRole, token_data_from_payload
from storefront.core.security import decode_access_token
from storefront.db.base import Base
from storefront.db.session import SessionLocal, engine, get_session_factory
from storefront.schemas.order import OrderResponse
from storefront.schemas.settings import StoreStatus
from storefront.services.availability_service import StoreStatusPoller, resolve_availability
from storefront.services.order_events import OrderChangeFeed
from storefront.services.order_monitor_service import OrderMonitorService
from storefront.services.settings_service import get_store_settings
from storefront.services.user_service import ensure_back_office_accounts

STOREFRONT_CHANNEL = "storefront"
MONITOR_CHANNEL = "monitor"


# WebSocket Connection Manager for real-time updates
class ConnectionManager:
    """Manages WebSocket connections per channel."""

    MAX_CONNECTIONS_PER_CHANNEL = 1000

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, channel: str, user_id: Optional[int] = None) -> bool:
        """Accept and register a WebSocket. Returns False if the channel is full."""
        if len(self.active_connections.get(channel, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "user_id": user_id,
            "channel": channel,
            "last_ping": datetime.now(timezone.utc),
        }
        logger.debug(f"WebSocket connected to channel '{channel}', user_id={user_id}")
        return True

    def disconnect(self, websocket: WebSocket, channel: str):
        if websocket in self.active_connections.get(channel, []):
            self.active_connections[channel].remove(websocket)
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    def update_ping(self, websocket: WebSocket):
        ws_id = id(websocket)
        if ws_id in self.connection_metadata:
            self.connection_metadata[ws_id]["last_ping"] = datetime.now(timezone.utc)

    async def broadcast(self, message: Dict[str, Any], channel: str):
        """Send to every connection in a channel, dropping the ones that fail."""
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, channel)

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        if channel:
            return len(self.active_connections.get(channel, []))
        return sum(len(conns) for conns in self.active_connections.values())


# Global connection manager instance
ws_manager = ConnectionManager()

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json
    import sys

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        csp_origins = " ".join(settings.cors_origins_list)
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: blob:; "
            f"connect-src 'self' ws: wss: {csp_origins}; "
            "font-src 'self' data:;"
        )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip logging for health checks and docs
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        request_logger.info(f"Request: {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {process_time:.3f}s - Client: {client_ip}"
            )
            raise

        process_time = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"Response: {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {process_time:.3f}s - Client: {client_ip}"
        )
        return response


def _status_message(store_status: StoreStatus) -> Dict[str, Any]:
    return {
        "event": "store_status",
        "data": store_status.model_dump(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def _broadcast_store_status(store_status: StoreStatus):
    await ws_manager.broadcast(_status_message(store_status), STOREFRONT_CHANNEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.shop_name} storefront")

    # Create tables if they don't exist (for SQLite dev)
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (SQLite mode)")

    db = SessionLocal()
    try:
        created = ensure_back_office_accounts(db)
        if created:
            logger.info(f"Created {created} back-office account(s)")
    except SQLAlchemyError as e:
        logger.warning(f"Back-office account bootstrap skipped: {e}")
    finally:
        db.close()

    app.state.order_feed = OrderChangeFeed()

    poller = StoreStatusPoller(SessionLocal, _broadcast_store_status)
    app.state.status_poller = poller
    poller.start()
    logger.info(f"Store status poller started (every {settings.status_poll_seconds}s)")

    yield

    await poller.stop()
    app.state.order_feed.close()
    logger.info(f"Shutting down {settings.shop_name} storefront")


app = FastAPI(
    title=f"{settings.shop_name} Storefront",
    description="Menu, cart, WhatsApp checkout and order monitor API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    """Service errors carry their own user-facing message and status."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - MUST be added last so it runs first (Starlette LIFO order).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/health/ready")
def readiness_check(session_factory: sessionmaker = Depends(get_session_factory)):
    """Readiness probe with database and WebSocket manager check."""
    checks = {
        "database": "unknown",
        "websocket_manager": f"healthy ({ws_manager.get_connection_count()} connections)",
    }

    db = session_factory()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        db.close()

    all_healthy = all(c.startswith("healthy") for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": f"{settings.shop_name} Storefront API",
        "docs": "/docs",
        "health": "/health",
    }


# ===== WebSocket Authentication Helper =====

async def _authenticate_websocket(
    websocket: WebSocket,
    token: Optional[str],
    channel_name: str,
    minimum_role: UserRole,
) -> Optional[TokenData]:
    """Authenticate a WebSocket connection. Returns the token data or None (rejected).

    Connections without a valid token or with too low a role are rejected
    with 1008 Policy Violation.
    """
    user = token_data_from_payload(decode_access_token(token) if token else None)
    if user is None:
        logger.warning(f"WebSocket rejected for '{channel_name}': no valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None

    if ROLE_HIERARCHY.get(user.role, 0) < ROLE_HIERARCHY[minimum_role]:
        logger.warning(f"WebSocket rejected for '{channel_name}': role {user.role.value} not allowed")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return user


async def _receive_loop(websocket: WebSocket):
    """Answer pings until the client goes away."""
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            ws_manager.update_ping(websocket)
            await websocket.send_text("pong")


def _current_store_status(session_factory: sessionmaker) -> StoreStatus:
    db = session_factory()
    try:
        return resolve_availability(get_store_settings(db))
    finally:
        db.close()


@app.websocket("/ws/storefront")
async def websocket_storefront(
    websocket: WebSocket,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Public store status updates. The current status is sent on connect."""
    if not await ws_manager.connect(websocket, STOREFRONT_CHANNEL):
        return

    try:
        poller = getattr(websocket.app.state, "status_poller", None)
        current = poller.last_status if poller is not None else None
        if current is None:
            current = await run_in_threadpool(_current_store_status, session_factory)
        await websocket.send_json(_status_message(current))
        await _receive_loop(websocket)
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket, STOREFRONT_CHANNEL)
    except Exception as e:
        logger.error(f"WebSocket error in {STOREFRONT_CHANNEL}: {e}", exc_info=True)
        ws_manager.disconnect(websocket, STOREFRONT_CHANNEL)


@app.websocket("/ws/monitor")
async def websocket_monitor(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Live order list for the staff monitor. Requires a monitor or admin token.

    Sends ``orders`` with the full sorted list after every change and
    ``new_order`` once per order that arrives while connected.
    """
    user = await _authenticate_websocket(websocket, token, MONITOR_CHANNEL, UserRole.MONITOR)
    if user is None:
        return
    if not await ws_manager.connect(websocket, MONITOR_CHANNEL, user_id=user.user_id):
        return

    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue()

    # Feed callbacks run in the publishing thread
    def on_orders_update(orders: List[OrderResponse]):
        message = {"event": "orders", "data": [o.model_dump(mode="json") for o in orders]}
        loop.call_soon_threadsafe(outbox.put_nowait, message)

    def on_new_order(order: OrderResponse):
        message = {"event": "new_order", "data": order.model_dump(mode="json")}
        loop.call_soon_threadsafe(outbox.put_nowait, message)

    async def _send_loop():
        while True:
            message = await outbox.get()
            await websocket.send_json(message)

    monitor = OrderMonitorService(session_factory, websocket.app.state.order_feed)
    await run_in_threadpool(monitor.start_listening, on_orders_update, on_new_order)
    sender = asyncio.create_task(_send_loop())
    logger.info(f"Order monitor connected: {user.email}")

    try:
        await _receive_loop(websocket)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error in {MONITOR_CHANNEL}: {e}", exc_info=True)
    finally:
        monitor.stop_listening()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        ws_manager.disconnect(websocket, MONITOR_CHANNEL)
        logger.info(f"Order monitor disconnected: {user.email}")
