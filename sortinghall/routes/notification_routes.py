import asyncio
import logging
from typing import Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()
logger = logging.getLogger("app")

HALL_UPDATED_EVENT = {"event": "hall_updated"}

hall_ws_clients: Set[WebSocket] = set()
_main_loop: Optional[asyncio.AbstractEventLoop] = None


def bind_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Merkt sich den Server-Loop, damit Worker-Threads Broadcasts einplanen können."""
    global _main_loop
    _main_loop = loop


async def broadcast_hall_updated() -> None:
    dead: Set[WebSocket] = set()
    for ws in list(hall_ws_clients):
        try:
            await ws.send_json(HALL_UPDATED_EVENT)
        except Exception:
            dead.add(ws)
    for ws in dead:
        try:
            await ws.close()
        except Exception:
            pass
        hall_ws_clients.discard(ws)


@router.websocket("/api/hall/ws")
async def hall_websocket(websocket: WebSocket):
    await websocket.accept()
    hall_ws_clients.add(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hall_ws_clients.discard(websocket)


# ===== Helper für synchrones Triggern =====
def trigger_hall_updated_sync() -> None:
    """
    Signalisiert allen UIs "Hallenzustand geändert" (ohne Payload).

    Wird nach jeder Zustandsänderung aus den Services aufgerufen, die in
    Worker-Threads laufen. Fire and forget: blockiert nicht und wirft nie.
    """
    if not hall_ws_clients:
        return
    try:
        loop = _main_loop
        if loop is None or not loop.is_running():
            # Kein Server-Loop (z.B. in Tests) - ignorieren
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            loop.create_task(broadcast_hall_updated())
        else:
            asyncio.run_coroutine_threadsafe(broadcast_hall_updated(), loop)
    except Exception as e:
        # Fehler beim Triggern darf die eigentliche Buchung nicht stoppen
        logger.error("Fehler beim Senden von hall_updated: %s", e)
