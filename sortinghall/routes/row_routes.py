import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from sortinghall.models.hall import ArticleUpdateSchema, HallRowRead, PalletSlotRead
from sortinghall.models.row_call import RowCallRead
from sortinghall.routes.hall_routes import build_row_read
from sortinghall.services.dispatch_service import DispatchService, get_dispatch_service
from sortinghall.services.errors import HallError, to_http_exception

router = APIRouter(prefix="/api/rows", tags=["Rows"])
logger = logging.getLogger("app")


class DispatchResponse(BaseModel):
    dispatched: bool
    call: Optional[RowCallRead] = None


@router.put("/{row_id}/article", response_model=HallRowRead)
def update_article(
    row_id: int,
    data: ArticleUpdateSchema,
    service: DispatchService = Depends(get_dispatch_service),
):
    try:
        row = service.set_article(row_id, data.article)
    except HallError as exc:
        raise to_http_exception(exc)
    return build_row_read(service.session, row)


@router.post("/{row_id}/pallets", response_model=PalletSlotRead)
def add_pallet(row_id: int, service: DispatchService = Depends(get_dispatch_service)):
    try:
        return PalletSlotRead.model_validate(service.add_pallet(row_id))
    except HallError as exc:
        raise to_http_exception(exc)


@router.delete("/{row_id}/pallets", response_model=PalletSlotRead)
def remove_pallet(row_id: int, service: DispatchService = Depends(get_dispatch_service)):
    try:
        return PalletSlotRead.model_validate(service.remove_pallet(row_id))
    except HallError as exc:
        raise to_http_exception(exc)


@router.post("/{row_id}/dispatch", response_model=DispatchResponse)
def dispatch_row(row_id: int, service: DispatchService = Depends(get_dispatch_service)):
    """Manueller Anstoss, z.B. nachdem Agilox wieder erreichbar ist."""
    try:
        call = service.try_dispatch(row_id)
    except HallError as exc:
        raise to_http_exception(exc)
    logger.info("Manueller Dispatch fuer Reihe %s: %s", row_id, "gestartet" if call else "nichts zu tun")
    return DispatchResponse(
        dispatched=call is not None,
        call=RowCallRead.model_validate(call) if call else None,
    )
