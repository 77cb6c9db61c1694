import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status

from pizzacraft.api.admin_orders import router as admin_orders_router
from pizzacraft.api.auth import router as auth_router
from pizzacraft.api.inventory import router as inventory_router
from pizzacraft.api.orders import router as orders_router
from pizzacraft.api.payment import router as payment_router
from pizzacraft.core import clock
from pizzacraft.core.config import ENVIRONMENT, LOG_LEVEL, PROJECT_NAME, STOCK_MONITOR_ENABLED, VERSION
from pizzacraft.core.db import close_db, init_db
from pizzacraft.core.exception_handlers import setup_exception_handlers
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services.notifications import EmailNotifier
from pizzacraft.services.stock_monitor import StockMonitor

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION} ({ENVIRONMENT})...")
    await init_db()  # Connect to DB and generate schemas
    if STOCK_MONITOR_ENABLED:
        app.state.stock_monitor.start()
    yield
    await app.state.stock_monitor.stop()
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.state.notifier = EmailNotifier()
app.state.stock_monitor = StockMonitor(app.state.notifier)

app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(inventory_router, prefix="/api/inventory", tags=["Inventory"])
app.include_router(orders_router, prefix="/api/orders", tags=["Orders"])
app.include_router(admin_orders_router, prefix="/api/admin/orders", tags=["Order Administration"])
app.include_router(payment_router, prefix="/api/payment", tags=["Payment"])

setup_exception_handlers(app)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME, "timestamp": clock.now().isoformat()}


@app.get("/api/ping", response_model=SuccessResponse)
async def ping():
    return SuccessResponse(message="pong")
