"""
Lesende Abfragen auf Reihen, Slots und Rufe.

Verfügbare Paletten werden bei jedem Aufruf aus den Slots und offenen Rufen
neu berechnet und nie zwischengespeichert. Wer danach schreibt, muss die
Abfrage unter der Reihen-Sperre ausführen (siehe hall_locks).
"""
from typing import List, Optional

from sqlmodel import Session, col, func, select

from sortinghall.models.hall import HELD_STATES, HallRow, PalletSlot, PalletState
from sortinghall.models.row_call import RowCall, RowCallStatus


def ordered_slots(session: Session, row_id: int) -> List[PalletSlot]:
    stmt = select(PalletSlot).where(PalletSlot.row_id == row_id).order_by(col(PalletSlot.position_index))
    return list(session.exec(stmt).all())


def bottom_slot(session: Session, row_id: int, state: PalletState) -> Optional[PalletSlot]:
    """Slot mit dem niedrigsten Index im gegebenen Zustand (nächster zur Abholung)."""
    stmt = (
        select(PalletSlot)
        .where(PalletSlot.row_id == row_id, PalletSlot.state == state)
        .order_by(col(PalletSlot.position_index))
    )
    return session.exec(stmt).first()


def top_slot(session: Session, row_id: int, state: PalletState) -> Optional[PalletSlot]:
    """Slot mit dem höchsten Index im gegebenen Zustand (nächster zum Auffüllen)."""
    stmt = (
        select(PalletSlot)
        .where(PalletSlot.row_id == row_id, PalletSlot.state == state)
        .order_by(col(PalletSlot.position_index).desc())
    )
    return session.exec(stmt).first()


def count_slots(session: Session, row_id: int, state: PalletState) -> int:
    stmt = select(func.count()).select_from(PalletSlot).where(
        PalletSlot.row_id == row_id, PalletSlot.state == state
    )
    return int(session.exec(stmt).one())


def occupied_count(session: Session, row_id: int) -> int:
    """Paletten, die physisch zur Reihe gehören: im Slot oder schon aufgeladen.

    Ein aufgeladener Slot (IN_TRANSIT) bleibt dem gestarteten Ruf zugeordnet,
    bis der Drop gemeldet wird; so bleibt die Differenz zu den gestarteten
    Rufen die tatsächlich freie Menge.
    """
    stmt = select(func.count()).select_from(PalletSlot).where(
        PalletSlot.row_id == row_id, col(PalletSlot.state).in_(HELD_STATES)
    )
    return int(session.exec(stmt).one())


def dispatched_pending_count(session: Session, row_id: int) -> int:
    stmt = select(func.count()).select_from(RowCall).where(
        RowCall.row_id == row_id,
        RowCall.status == RowCallStatus.PENDING,
        col(RowCall.order_id).is_not(None),
    )
    return int(session.exec(stmt).one())


def available_count(session: Session, row_id: int) -> int:
    return occupied_count(session, row_id) - dispatched_pending_count(session, row_id)


def next_undispatched_call(session: Session, row_id: int) -> Optional[RowCall]:
    """Ältester offener Ruf der Reihe, der noch nicht an Agilox ging (FIFO)."""
    stmt = (
        select(RowCall)
        .where(
            RowCall.row_id == row_id,
            RowCall.status == RowCallStatus.PENDING,
            col(RowCall.order_id).is_(None),
        )
        .order_by(col(RowCall.requested_at), col(RowCall.id))
    )
    return session.exec(stmt).first()


def pending_calls_for_row(session: Session, row_id: int) -> List[RowCall]:
    stmt = (
        select(RowCall)
        .where(RowCall.row_id == row_id, RowCall.status == RowCallStatus.PENDING)
        .order_by(col(RowCall.requested_at), col(RowCall.id))
    )
    return list(session.exec(stmt).all())


def latest_pending_call_for_table(session: Session, table_id: int) -> Optional[RowCall]:
    stmt = (
        select(RowCall)
        .where(RowCall.table_id == table_id, RowCall.status == RowCallStatus.PENDING)
        .order_by(col(RowCall.requested_at).desc(), col(RowCall.id).desc())
    )
    return session.exec(stmt).first()


def latest_call_for_table(session: Session, table_id: int) -> Optional[RowCall]:
    stmt = (
        select(RowCall)
        .where(RowCall.table_id == table_id)
        .order_by(col(RowCall.requested_at).desc(), col(RowCall.id).desc())
    )
    return session.exec(stmt).first()


def rows_by_name(session: Session, article: Optional[str] = None) -> List[HallRow]:
    """Reihen aufsteigend nach Name, optional nur mit dem gegebenen Artikel."""
    stmt = select(HallRow)
    if article is not None:
        stmt = stmt.where(HallRow.article == article)
    return list(session.exec(stmt.order_by(col(HallRow.name))).all())


def oldest_dispatched_pending_call(session: Session) -> Optional[RowCall]:
    """Ruf, den Agilox gerade bearbeitet (für die Statusleiste)."""
    stmt = (
        select(RowCall)
        .where(RowCall.status == RowCallStatus.PENDING, col(RowCall.order_id).is_not(None))
        .order_by(col(RowCall.requested_at), col(RowCall.id))
    )
    return session.exec(stmt).first()
