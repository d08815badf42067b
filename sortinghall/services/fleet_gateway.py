"""
Anbindung an die Agilox-Flotte.

Die Flotte ist ein externes System: wir starten einen Workflow (Palette von
Reihe zu Tisch fahren) und bekommen eine Auftragsnummer zurück, alles weitere
kommt asynchron per Callback (siehe callback_reconciler).
"""
import json
import logging
from functools import lru_cache
from typing import Optional, Protocol

import httpx

from sortinghall.config import load_config
from sortinghall.models.agilox import parse_order_id

logger = logging.getLogger("agilox")


class FleetGatewayError(Exception):
    """Agilox nicht erreichbar oder Antwort mit Fehlerstatus."""


class FleetGateway(Protocol):
    def begin_move(self, row_name: str, table_name: str) -> Optional[int]:
        ...

    def cancel_order(self, order_id: int) -> None:
        ...


def parse_workflow_order_id(body: str) -> Optional[int]:
    """Liest "id" aus der Workflow-Antwort.

    Typisch ist eine Zahl ({"id": 169956752581240004}), manchmal ein String
    ({"id": "169956752581240004"}). Alles andere ergibt None.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("Agilox-Antwort nicht parsebar: %s (%s)", body, exc)
        return None
    if not isinstance(data, dict):
        return None
    return parse_order_id(data.get("id"))


class AgiloxGateway:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        dispatch_workflow: int = 501,
        cancel_workflow: int = 500,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.dispatch_workflow = dispatch_workflow
        self.cancel_workflow = cancel_workflow
        self._client = httpx.Client(base_url=base_url, timeout=timeout_seconds, transport=transport)

    def _post_workflow(self, workflow: int, payload: dict) -> httpx.Response:
        try:
            response = self._client.post(f"workflow/{workflow}", json=payload)
        except httpx.HTTPError as exc:
            raise FleetGatewayError(f"Agilox nicht erreichbar (workflow {workflow}): {exc}") from exc
        if not response.is_success:
            raise FleetGatewayError(
                f"Agilox antwortet mit HTTP {response.status_code} (workflow {workflow}): {response.text}"
            )
        return response

    def begin_move(self, row_name: str, table_name: str) -> Optional[int]:
        response = self._post_workflow(self.dispatch_workflow, {"@ROW": row_name, "@TABLE": table_name})
        logger.info("Agilox-Antwort für Reihe %s: %s", row_name, response.text)
        return parse_workflow_order_id(response.text)

    def cancel_order(self, order_id: int) -> None:
        response = self._post_workflow(self.cancel_workflow, {"@ORDERID": str(order_id)})
        logger.info("Agilox-Storno für Auftrag %s angenommen: %s", order_id, response.text)

    def close(self) -> None:
        self._client.close()


@lru_cache(maxsize=1)
def get_fleet_gateway() -> FleetGateway:
    """Dependency: ein Gateway pro Prozess, konfiguriert aus config.yaml."""
    cfg = load_config()["agilox"]
    return AgiloxGateway(
        base_url=cfg["base_url"],
        timeout_seconds=float(cfg.get("timeout_seconds", 5)),
        dispatch_workflow=int(cfg.get("dispatch_workflow", 501)),
        cancel_workflow=int(cfg.get("cancel_workflow", 500)),
    )
