import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 8086,
    },
    "logging": {
        "enabled": True,
        "level": "INFO",
        "keep_days": 14,
        "max_size_mb": 10,
        "backup_count": 3,
        "modules": {},
    },
    "agilox": {
        "base_url": "http://localhost:8080/api",
        "timeout_seconds": 5,
        "dispatch_workflow": 501,
        "cancel_workflow": 500,
    },
    "hall": {
        "rows": [],
        "tables": [],
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """Liest config.yaml und legt sie über die eingebauten Defaults.

    Fehlt die Datei, werden nur die Defaults verwendet. Einige Werte
    lassen sich per Umgebungsvariable überschreiben (AGILOX_BASE_URL).
    """
    config_path = path or CONFIG_PATH
    loaded: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    config = _merge(DEFAULT_CONFIG, loaded)

    base_url = os.getenv("AGILOX_BASE_URL")
    if base_url:
        config["agilox"]["base_url"] = base_url
    return config


def get_logging_config(config: Dict[str, Any] | None = None) -> Dict[str, Any]:
    logging_cfg = (config or load_config()).get("logging", {})
    return {
        "enabled": logging_cfg.get("enabled", True),
        "level": logging_cfg.get("level", "INFO"),
        "keep_days": logging_cfg.get("keep_days", 14),
        "max_size_mb": logging_cfg.get("max_size_mb", 10),
        "backup_count": logging_cfg.get("backup_count", 3),
        "modules": logging_cfg.get("modules", {}),
    }


def get_server_bind(config: Dict[str, Any]) -> tuple[str, int]:
    host = os.getenv("HOST") or config.get("server", {}).get("host") or "0.0.0.0"
    port_val = os.getenv("PORT") or config.get("server", {}).get("port") or 8086
    try:
        port = int(port_val)
    except (TypeError, ValueError):
        port = 8086
    return host, port
