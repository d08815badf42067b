from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, col, select

from sortinghall.database import get_session
from sortinghall.models.hall import HallRow, HallRowRead, PalletSlotRead, WorkTable
from sortinghall.models.row_call import (
    ActivityRead,
    HallStatusRead,
    RowCall,
    RowCallRead,
    TableOverviewRead,
)
from sortinghall.services.activity_description import describe_activity
from sortinghall.services.hall_queries import (
    available_count,
    latest_call_for_table,
    latest_pending_call_for_table,
    occupied_count,
    oldest_dispatched_pending_call,
    ordered_slots,
    pending_calls_for_row,
    rows_by_name,
)

router = APIRouter(prefix="/api/hall", tags=["Hall"])


def _activity(call: RowCall | None) -> ActivityRead | None:
    if call is None:
        return None
    desc = describe_activity(call)
    return ActivityRead(text=desc.text, severity=desc.severity.value)


def _call_read(call: RowCall | None) -> RowCallRead | None:
    return RowCallRead.model_validate(call) if call else None


def build_row_read(session: Session, row: HallRow) -> HallRowRead:
    return HallRowRead(
        id=row.id,
        name=row.name,
        color_hex=row.color_hex,
        capacity=row.capacity,
        article=row.article,
        slots=[PalletSlotRead.model_validate(s) for s in ordered_slots(session, row.id)],
        occupied_count=occupied_count(session, row.id),
        available_count=available_count(session, row.id),
        pending_calls=[RowCallRead.model_validate(c) for c in pending_calls_for_row(session, row.id)],
    )


def _table_overview(session: Session, table: WorkTable) -> TableOverviewRead:
    pending = latest_pending_call_for_table(session, table.id)
    last = latest_call_for_table(session, table.id)
    return TableOverviewRead(
        id=table.id,
        name=table.name,
        pending_call=_call_read(pending),
        last_call=_call_read(last),
        # ohne offenen Ruf zeigt die Kachel, wie der letzte Ruf endete
        activity=_activity(pending or last),
    )


@router.get("/rows", response_model=List[HallRowRead])
def list_rows(session: Session = Depends(get_session)):
    return [build_row_read(session, row) for row in rows_by_name(session)]


@router.get("/rows/{row_id}", response_model=HallRowRead)
def get_row(row_id: int, session: Session = Depends(get_session)):
    row = session.get(HallRow, row_id)
    if not row:
        raise HTTPException(status_code=404, detail="Reihe nicht gefunden")
    return build_row_read(session, row)


@router.get("/tables", response_model=List[TableOverviewRead])
def list_tables(session: Session = Depends(get_session)):
    tables = session.exec(select(WorkTable).order_by(col(WorkTable.name))).all()
    return [_table_overview(session, t) for t in tables]


@router.get("/tables/{table_id}", response_model=TableOverviewRead)
def get_table(table_id: int, session: Session = Depends(get_session)):
    table = session.get(WorkTable, table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Tisch nicht gefunden")
    return _table_overview(session, table)


@router.get("/status", response_model=HallStatusRead)
def hall_status(session: Session = Depends(get_session)):
    """Globale Statusleiste: der Ruf, den Agilox gerade faehrt (falls vorhanden)."""
    call = oldest_dispatched_pending_call(session)
    if call is None:
        return HallStatusRead(has_active=False)
    row = session.get(HallRow, call.row_id) if call.row_id is not None else None
    table = session.get(WorkTable, call.table_id)
    return HallStatusRead(
        has_active=True,
        row_name=row.name if row else None,
        article=row.article if row else None,
        table_name=table.name if table else None,
        order_id=call.order_id,
        activity=_activity(call),
    )
