import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict

LOG_DIR = Path("logs/app")
LOG_FILE = LOG_DIR / "app.log"
MANAGED_LOGGERS = ["", "uvicorn.error", "uvicorn"]
# Modul-Logger der Halle: app (Routen/Startup), dispatch (Rufe/Slots), agilox (Gateway/Callbacks)
MODULES = ["app", "dispatch", "agilox", "errors"]
_CURRENT_HANDLERS: Dict[str, RotatingFileHandler] = {}
LOG_FORMATTER = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")


def _get_level(level_str: str) -> int:
    lvl = (level_str or "").upper()
    if lvl in {"DEBUG", "INFO", "WARNING", "ERROR"}:
        return getattr(logging, lvl)
    return logging.INFO


def _cleanup_old_logs(keep_days: int) -> None:
    if keep_days <= 0:
        return
    cutoff = time.time() - keep_days * 86400
    for file_path in LOG_DIR.glob("app.log.*"):
        try:
            if file_path.is_file() and file_path.stat().st_mtime < cutoff:
                file_path.unlink()
        except OSError:
            pass


def _clear_handlers() -> None:
    for logger_name, handler in list(_CURRENT_HANDLERS.items()):
        logger_obj = logging.getLogger(logger_name)
        if handler in logger_obj.handlers:
            logger_obj.removeHandler(handler)
        handler.close()
    _CURRENT_HANDLERS.clear()


def _install_handlers(level: int, max_size_mb: int, backup_count: int) -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    for logger_name in MANAGED_LOGGERS:
        handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(LOG_FORMATTER)
        logging.getLogger(logger_name).addHandler(handler)
        _CURRENT_HANDLERS[logger_name] = handler


def _configure_modules(level: int, logging_enabled: bool, modules_cfg: dict) -> Dict[str, bool]:
    statuses: Dict[str, bool] = {}
    for module_name in MODULES:
        module_entry = modules_cfg.get(module_name, {})
        # Hallen-Module sind standardmäßig aktiv, nur explizit abschaltbar
        module_enabled = bool(module_entry.get("enabled", True))
        final_enabled = logging_enabled and module_enabled
        module_logger = logging.getLogger(module_name)
        module_logger.disabled = not final_enabled
        module_logger.setLevel(level if final_enabled else logging.CRITICAL + 10)
        statuses[module_name] = final_enabled
    return statuses


def reconfigure_logging(logging_config: dict) -> Dict[str, bool]:
    enabled = bool(logging_config.get("enabled", True))
    level = _get_level(logging_config.get("level", "INFO"))
    max_size_mb = max(1, int(logging_config.get("max_size_mb", 10)))
    backup_count = max(1, int(logging_config.get("backup_count", 3)))
    keep_days = int(logging_config.get("keep_days", 0))
    modules_cfg = logging_config.get("modules", {})

    _clear_handlers()
    if enabled:
        _install_handlers(level, max_size_mb, backup_count)
        _cleanup_old_logs(keep_days)

    root_logger = logging.getLogger()
    root_logger.setLevel(level if enabled else logging.CRITICAL + 10)
    for logger_name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(logger_name).setLevel(level if enabled else logging.CRITICAL + 10)

    return _configure_modules(level, enabled, modules_cfg)


def setup_console_logging() -> None:
    """Konsolen-Handler am Root-Logger; Access-Logs bleiben aus app.log raus."""
    root_logger = logging.getLogger()
    if not any(getattr(h, "_sortinghall_console", False) for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(LOG_FORMATTER)
        console_handler._sortinghall_console = True  # type: ignore[attr-defined]
        root_logger.addHandler(console_handler)
    for h in list(logging.getLogger("uvicorn.access").handlers):
        logging.getLogger("uvicorn.access").removeHandler(h)
