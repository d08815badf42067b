import logging

import uvicorn

# .env früh laden, damit HOST/PORT/SORTINGHALL_DB_PATH/AGILOX_BASE_URL
# für später importierte Module sichtbar sind.
from dotenv import load_dotenv

load_dotenv(override=True)

from sortinghall.config import get_logging_config, get_server_bind, load_config
from sortinghall.logging.runtime import reconfigure_logging, setup_console_logging

config = load_config()

# ---------------------------------------------------------
# LOGGING SYSTEM
# ---------------------------------------------------------
module_status = reconfigure_logging(get_logging_config(config))
setup_console_logging()
app_logger = logging.getLogger("app")
app_logger.info("SortingHall Logging-System initialisiert.")
app_logger.info("Aktive Log-Module: %s", module_status)


# Reload nur über die CLI:
# uvicorn sortinghall.main:app --reload --port 8086
def start():
    host, port = get_server_bind(config)
    app_logger.info("Starting SortingHall on %s:%s (reload disabled)", host, port)
    try:
        uvicorn.run(
            "sortinghall.main:app",
            host=host,
            port=port,
            reload=False,
            log_level="info",
            loop="asyncio",
            ws="websockets",
        )
    except OSError as exc:
        if exc.errno in (98, 10048):
            app_logger.error("Port %s already in use. Set PORT env to a free port or stop the other process.", port)
            return
        raise


if __name__ == "__main__":
    start()
