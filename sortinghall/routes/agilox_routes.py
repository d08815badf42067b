import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from sortinghall.database import get_session
from sortinghall.models.agilox import AgiloxCallback
from sortinghall.services.callback_reconciler import CallbackReconciler

router = APIRouter(prefix="/agilox", tags=["Agilox"])
logger = logging.getLogger("agilox")


@router.post("/callback")
async def agilox_callback(request: Request, session: Session = Depends(get_session)):
    """
    Callback von Agilox (pickup/drop mit Status).

    Antwortet immer mit 200 und success=true, damit Agilox nicht endlos
    wiederholt; kaputte oder unbekannte Callbacks werden nur geloggt.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Agilox-Callback ohne gueltiges JSON: %s", exc)
        return {"success": True, "matched": False}

    if not isinstance(body, dict):
        logger.warning("Agilox-Callback ist kein JSON-Objekt: %r", body)
        return {"success": True, "matched": False}

    try:
        callback = AgiloxCallback.model_validate(body)
    except ValidationError as exc:
        logger.warning("Agilox-Callback nicht lesbar: %s", exc)
        return {"success": True, "matched": False}

    try:
        result = await run_in_threadpool(CallbackReconciler(session).process, callback)
    except (SQLAlchemyError, OverflowError) as exc:
        # Agilox bekommt trotzdem success, sonst wiederholt es den Callback endlos
        logger.error("Agilox-Callback orderid=%s konnte nicht gespeichert werden: %s", callback.orderid, exc, exc_info=True)
        session.rollback()
        return {"success": True, "matched": False}
    return {
        "success": True,
        "matched": result.matched,
        "call_id": result.call_id,
        "status": result.call_status.value if result.call_status else None,
    }
