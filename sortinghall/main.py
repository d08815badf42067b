import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sortinghall.config import get_logging_config, load_config
from sortinghall.logging.runtime import reconfigure_logging, setup_console_logging

config = load_config()
reconfigure_logging(get_logging_config(config))
# WICHTIG: Access-Logs explizit NICHT in app.log
setup_console_logging()

from sortinghall.database import init_db
from sortinghall.db.session import session_scope
from sortinghall.routes.agilox_routes import router as agilox_router
from sortinghall.routes.hall_routes import router as hall_router
from sortinghall.routes.health import router as health_router
from sortinghall.routes.notification_routes import bind_event_loop
from sortinghall.routes.notification_routes import router as notification_router
from sortinghall.routes.row_routes import router as row_router
from sortinghall.routes.settings_routes import router as settings_router
from sortinghall.routes.table_routes import router as table_router
from sortinghall.services.data_seeder import seed_hall

logger = logging.getLogger("app")


# -----------------------------------------------------
# STARTUP
# -----------------------------------------------------
def seed_hall_from_config() -> None:
    with session_scope() as session:
        seed_hall(session, config.get("hall", {}))
    logger.info("[STARTUP] Halle aus config.yaml synchronisiert")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    seed_hall_from_config()
    # Broadcasts aus Worker-Threads laufen über diesen Loop
    bind_event_loop(asyncio.get_running_loop())
    logger.info("[APP] Startup abgeschlossen - SortingHall ist bereit")
    yield
    logger.info("[APP] SortingHall wird beendet")


# -----------------------------------------------------
# FASTAPI APP
# -----------------------------------------------------

app = FastAPI(
    title="SortingHall",
    description="Reihenrufe und Agilox-Abgleich fuer die Palettenhalle",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


# -----------------------------------------------------
# ROUTES - API
# -----------------------------------------------------
app.include_router(health_router)
app.include_router(hall_router)
app.include_router(table_router)
app.include_router(row_router)
app.include_router(settings_router)
app.include_router(agilox_router)
app.include_router(notification_router)
