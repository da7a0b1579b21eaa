"""
Storefront API - Application Entry Point
=========================================
FastAPI app initialization, error handlers, middleware, and router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.database import SessionLocal, Base, engine
from common.exceptions import StorefrontError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("storefront.http")


# ==========================================
# Import ALL models so Base can see them
# ==========================================
from modules.catalog.models import Product  # noqa: F401,E402
from modules.inventory.models import Inventory  # noqa: F401,E402
from modules.cart.models import CartItem  # noqa: F401,E402
from modules.order.models import Order  # noqa: F401,E402

# ==========================================
# Import routers
# ==========================================
from modules.catalog.routes import router as catalog_router  # noqa: E402
from modules.inventory.routes import router as inventory_router  # noqa: E402
from modules.inventory.admin_routes import router as inventory_admin_router  # noqa: E402
from modules.cart.routes import router as cart_router  # noqa: E402
from modules.order.admin_routes import router as order_admin_router  # noqa: E402
from modules.order.routes import router as order_router  # noqa: E402


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info("Storefront API started")
    yield
    logger.info("Storefront API stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Storefront API",
    description="Clothing store backend: catalog, cart, inventory, orders",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handlers: one JSON error envelope
# ==========================================

def _error_response(status_code: int, kind: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": {"kind": kind, "message": message, **extra}},
        status_code=status_code,
    )


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse({"success": False, "error": exc.to_dict()}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kind = "NotFound" if exc.status_code == 404 else "HTTPError"
    return _error_response(exc.status_code, kind, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(400, "ValidationError", "Validation failed", errors=errors)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Persistence failure on {request.method} {request.url.path}")
    return _error_response(500, "PersistenceError", "A storage error occurred. Please try again.")


# ==========================================
# Middleware: Request Log
# ==========================================
_SKIP_PATHS = ("/health", "/favicon.ico")


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Log method, path, status and elapsed time for every request."""
    path = request.url.path
    if any(path.startswith(p) for p in _SKIP_PATHS):
        return await call_next(request)

    start = _time.time()
    response = await call_next(request)
    elapsed_ms = int((_time.time() - start) * 1000)
    logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms}ms)")
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(catalog_router)
app.include_router(inventory_router)
app.include_router(inventory_admin_router)
app.include_router(cart_router)
app.include_router(order_admin_router)  # before order_router: /api/orders/admin
app.include_router(order_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"success": True, "status": "ok", "version": "1.0.0"}


@app.get("/health/db")
def health_db():
    """Check database connectivity."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        ok = True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        ok = False
    finally:
        db.close()
    return JSONResponse(
        {"success": ok, "database": "ok" if ok else "unreachable"},
        status_code=200 if ok else 503,
    )
