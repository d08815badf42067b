from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from sortinghall.models.row_call import CallArticleSchema, CallRowSchema, RowCallRead
from sortinghall.services.dispatch_service import CallRequestResult, DispatchService, get_dispatch_service
from sortinghall.services.errors import HallError, to_http_exception

router = APIRouter(prefix="/api/tables", tags=["Tables"])


class CallRequestResponse(BaseModel):
    created: bool
    reason: str
    call: Optional[RowCallRead] = None


def _to_response(result: CallRequestResult) -> CallRequestResponse:
    return CallRequestResponse(
        created=result.created,
        reason=result.reason,
        call=RowCallRead.model_validate(result.call) if result.call else None,
    )


@router.post("/{table_id}/call-row", response_model=CallRequestResponse)
def call_row(
    table_id: int,
    data: CallRowSchema,
    service: DispatchService = Depends(get_dispatch_service),
):
    try:
        return _to_response(service.request_row(table_id, data.row_id))
    except HallError as exc:
        raise to_http_exception(exc)


@router.post("/{table_id}/call-article", response_model=CallRequestResponse)
def call_article(
    table_id: int,
    data: CallArticleSchema,
    service: DispatchService = Depends(get_dispatch_service),
):
    """Artikelruf; ohne passende Reihe kommt created=False, reason=no_candidate."""
    try:
        return _to_response(service.request_article(table_id, data.article))
    except HallError as exc:
        raise to_http_exception(exc)


@router.post("/{table_id}/cancel", response_model=RowCallRead, status_code=status.HTTP_200_OK)
def cancel_call(table_id: int, service: DispatchService = Depends(get_dispatch_service)):
    try:
        return RowCallRead.model_validate(service.cancel_call(table_id))
    except HallError as exc:
        raise to_http_exception(exc)
