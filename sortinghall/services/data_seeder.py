"""
Initialbefüllung der Halle aus config.yaml (Abschnitt `hall`).

Idempotent: mehrfacher Aufruf legt nichts doppelt an. Bestehende Reihen
werden an Farbe und Kapazität angeglichen.
"""
import logging
from typing import Any, Dict

from sqlmodel import Session, select

from sortinghall.models.hall import HallRow, PalletSlot, PalletState, WorkTable
from sortinghall.services.hall_queries import ordered_slots

logger = logging.getLogger("app")


def _sync_slots(session: Session, row: HallRow, capacity: int) -> None:
    existing = ordered_slots(session, row.id)
    present = set()
    for slot in existing:
        if slot.position_index >= capacity:
            if slot.state != PalletState.EMPTY:
                logger.warning(
                    "Reihe %s: Slot %s wird entfernt, obwohl er nicht leer ist (%s).",
                    row.name, slot.position_index, slot.state.value,
                )
            session.delete(slot)
        else:
            present.add(slot.position_index)
    for index in range(capacity):
        if index not in present:
            session.add(PalletSlot(row_id=row.id, position_index=index, state=PalletState.EMPTY))


def seed_hall(session: Session, hall_cfg: Dict[str, Any]) -> None:
    rows_cfg = (hall_cfg or {}).get("rows") or []
    tables_cfg = (hall_cfg or {}).get("tables") or []

    for row_cfg in rows_cfg:
        name = str(row_cfg.get("name") or "").strip()
        if not name:
            logger.warning("Reihe ohne Namen in config.yaml uebersprungen: %s", row_cfg)
            continue
        color = row_cfg.get("color") or row_cfg.get("color_hex") or "#000000"
        capacity = max(int(row_cfg.get("capacity", 0)), 0)

        row = session.exec(select(HallRow).where(HallRow.name == name)).first()
        if row is None:
            row = HallRow(name=name, color_hex=color, capacity=capacity)
            session.add(row)
            session.flush()
            logger.info("Reihe %s angelegt (Kapazitaet %s).", name, capacity)
        else:
            row.color_hex = color
            row.capacity = capacity
            session.add(row)
        _sync_slots(session, row, capacity)

    session.commit()

    for table_cfg in tables_cfg:
        name = str(table_cfg.get("name") or "").strip()
        if not name:
            continue
        exists = session.exec(select(WorkTable).where(WorkTable.name == name)).first()
        if not exists:
            session.add(WorkTable(name=name))
            logger.info("Tisch %s angelegt.", name)

    session.commit()
