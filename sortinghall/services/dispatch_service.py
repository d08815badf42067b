"""
Dispatch-Service - Rufe der Tische an die Agilox-Flotte übergeben

Verwaltet:
- Rufe der Tische (konkrete Reihe oder Artikel), max. ein offener Ruf pro Tisch
- Start eines Agilox-Auftrags, sobald die Reihe eine freie Palette hat
- Storno eines Rufs (lokal sofort, bei Agilox best effort)
- Buchungen des Lageristen: Palette hinzufügen/entnehmen, Artikel setzen

Ein Ruf bekommt erst dann eine Auftragsnummer, wenn für ihn eine physische
Palette da ist: belegte Slots minus bereits gestartete, offene Rufe.
Schlägt der Start fehl, bleibt der Ruf in der Warteschlange und wird beim
nächsten Auslöser (neuer Ruf, Palette hinzugefügt/entnommen) erneut versucht.
Einen Timer dafür gibt es nicht.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends
from sqlmodel import Session

from sortinghall.database import get_session
from sortinghall.models.agilox import parse_order_id
from sortinghall.models.hall import HallRow, PalletSlot, PalletState, WorkTable
from sortinghall.models.row_call import RowCall, RowCallStatus
from sortinghall.routes.notification_routes import trigger_hall_updated_sync
from sortinghall.routes.settings_routes import get_row_selection_strategy
from sortinghall.services.errors import HallNotFoundError, HallPreconditionError
from sortinghall.services.fleet_gateway import FleetGateway, FleetGatewayError, get_fleet_gateway
from sortinghall.services.hall_locks import ROW_LOCKS, TABLE_LOCKS, KeyedLocks
from sortinghall.services.hall_queries import (
    available_count,
    bottom_slot,
    count_slots,
    latest_pending_call_for_table,
    next_undispatched_call,
    top_slot,
)
from sortinghall.services.row_selection import select_row_for_article

logger = logging.getLogger("dispatch")


@dataclass
class CallRequestResult:
    call: Optional[RowCall]
    created: bool
    # "created", "already_pending" oder "no_candidate"
    reason: str


class DispatchService:
    def __init__(
        self,
        session: Session,
        gateway: FleetGateway,
        notify: Optional[Callable[[], None]] = None,
        row_locks: KeyedLocks = ROW_LOCKS,
        table_locks: KeyedLocks = TABLE_LOCKS,
    ):
        self.session = session
        self.gateway = gateway
        self.notify = notify or trigger_hall_updated_sync
        self.row_locks = row_locks
        self.table_locks = table_locks

    def _get_row(self, row_id: int) -> HallRow:
        row = self.session.get(HallRow, row_id)
        if not row:
            raise HallNotFoundError(f"Reihe {row_id} nicht gefunden")
        return row

    def _get_table(self, table_id: int) -> WorkTable:
        table = self.session.get(WorkTable, table_id)
        if not table:
            raise HallNotFoundError(f"Tisch {table_id} nicht gefunden")
        return table

    # ------------------------------------------------------------------
    # Rufe der Tische
    # ------------------------------------------------------------------
    def request_row(self, table_id: int, row_id: int) -> CallRequestResult:
        """Tisch ruft eine konkrete Reihe."""
        table = self._get_table(table_id)
        row = self._get_row(row_id)
        return self._create_call(table, lambda: row)

    def request_article(self, table_id: int, article: str) -> CallRequestResult:
        """Tisch ruft einen Artikel; die Reihe wählt die eingestellte Strategie."""
        table = self._get_table(table_id)
        article = (article or "").strip()

        def resolve() -> Optional[HallRow]:
            strategy = get_row_selection_strategy(self.session)
            row = select_row_for_article(self.session, article, strategy)
            if row is None:
                logger.info("Keine Reihe mit Artikel '%s' fuer Tisch %s gefunden.", article, table.name)
            return row

        return self._create_call(table, resolve)

    def _create_call(self, table: WorkTable, resolve_row: Callable[[], Optional[HallRow]]) -> CallRequestResult:
        table_id = table.id
        with self.table_locks.hold(table_id):
            self.session.expire_all()
            existing = latest_pending_call_for_table(self.session, table_id)
            if existing is not None:
                # Doppelklick o.ä.: kein zweiter Ruf
                logger.info("Tisch %s hat bereits offenen Ruf %s - kein neuer Ruf.", table_id, existing.id)
                return CallRequestResult(call=existing, created=False, reason="already_pending")

            row = resolve_row()
            if row is None:
                return CallRequestResult(call=None, created=False, reason="no_candidate")

            call = RowCall(table_id=table_id, row_id=row.id, status=RowCallStatus.PENDING)
            self.session.add(call)
            self.session.commit()
            self.session.refresh(call)
            row_id = row.id
            logger.info("Neuer Ruf %s: Tisch %s -> Reihe %s", call.id, table_id, row_id)

        self._dispatch_next(row_id)
        self.session.refresh(call)
        self.notify()
        return CallRequestResult(call=call, created=True, reason="created")

    def cancel_call(self, table_id: int) -> RowCall:
        """
        Storniert den neuesten offenen Ruf des Tisches.

        Lokal wird immer storniert. Hatte der Ruf schon eine Auftragsnummer,
        wird Agilox danach um Storno gebeten; ein Fehler dabei wird nur geloggt.
        """
        table = self._get_table(table_id)
        with self.table_locks.hold(table.id):
            self.session.expire_all()
            call = latest_pending_call_for_table(self.session, table_id)
            if call is None:
                raise HallNotFoundError(f"Tisch {table.name} hat keinen offenen Ruf")
            with self.row_locks.hold_optional(call.row_id):
                self.session.refresh(call)
                if call.status != RowCallStatus.PENDING:
                    # Callback war schneller
                    raise HallNotFoundError(f"Tisch {table.name} hat keinen offenen Ruf")
                call.status = RowCallStatus.CANCELLED
                self.session.add(call)
                self.session.commit()
                self.session.refresh(call)
        logger.info("Ruf %s von Tisch %s storniert (OrderId=%s).", call.id, table.name, call.order_id)
        self.notify()

        if call.order_id is not None:
            self._cancel_remote(call)
        return call

    def _cancel_remote(self, call: RowCall) -> None:
        try:
            self.gateway.cancel_order(call.order_id)
        except FleetGatewayError as exc:
            logger.warning(
                "Agilox-Storno fuer Ruf %s (OrderId=%s) fehlgeschlagen, lokal bleibt storniert: %s",
                call.id, call.order_id, exc,
            )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def try_dispatch(self, row_id: int) -> Optional[RowCall]:
        """Startet den ältesten wartenden Ruf der Reihe, falls eine Palette frei ist."""
        call = self._dispatch_next(row_id)
        if call is not None:
            self.notify()
        return call

    def _dispatch_next(self, row_id: int) -> Optional[RowCall]:
        with self.row_locks.hold(row_id):
            self.session.expire_all()
            row = self._get_row(row_id)

            available = available_count(self.session, row_id)
            if available <= 0:
                logger.info("Reihe %s hat keine freie Palette - Workflow wird noch nicht gestartet.", row.name)
                return None

            call = next_undispatched_call(self.session, row_id)
            if call is None:
                return None

            table = self.session.get(WorkTable, call.table_id)
            table_name = table.name if table else ""
            try:
                order_id = self.gateway.begin_move(row.name, table_name)
                # ausserhalb des 64-bit-Bereichs nicht speicherbar
                order_id = parse_order_id(order_id)
            except FleetGatewayError as exc:
                logger.warning(
                    "Workflow fuer Ruf %s (Reihe %s, Tisch %s) fehlgeschlagen, Ruf bleibt wartend: %s",
                    call.id, row.name, table_name, exc,
                )
                return None

            if order_id is None:
                logger.warning(
                    "Agilox-Antwort enthaelt keine verwendbare 'id', Reihe %s, Ruf %s bleibt wartend.",
                    row.name, call.id,
                )
                return None

            call.assign_order_id(order_id)
            self.session.add(call)
            self.session.commit()
            self.session.refresh(call)

        logger.info(
            "Workflow gestartet fuer Reihe %s und Tisch %s, Ruf %s, OrderId=%s",
            row.name, table_name, call.id, call.order_id,
        )
        return call

    # ------------------------------------------------------------------
    # Buchungen des Lageristen
    # ------------------------------------------------------------------
    def add_pallet(self, row_id: int) -> PalletSlot:
        """Bucht eine Palette in den höchsten freien Slot und versucht danach zu dispatchen."""
        with self.row_locks.hold(row_id):
            self.session.expire_all()
            row = self._get_row(row_id)
            if not row.article.strip():
                raise HallPreconditionError(
                    f"Reihe {row.name} hat keinen Artikel. Bitte zuerst Artikel eingeben und speichern."
                )
            slot = top_slot(self.session, row_id, PalletState.EMPTY)
            if slot is None:
                raise HallPreconditionError(f"Reihe {row.name} ist voll belegt.")
            slot.state = PalletState.OCCUPIED
            self.session.add(slot)
            self.session.commit()
            self.session.refresh(slot)
            logger.info("Palette in Reihe %s auf Position %s gebucht.", row.name, slot.position_index)

        self._dispatch_next(row_id)
        self.notify()
        return slot

    def remove_pallet(self, row_id: int) -> PalletSlot:
        """Korrektur: entnimmt die vorderste belegte Palette (niedrigster Index)."""
        with self.row_locks.hold(row_id):
            self.session.expire_all()
            row = self._get_row(row_id)
            slot = bottom_slot(self.session, row_id, PalletState.OCCUPIED)
            if slot is None:
                raise HallPreconditionError(f"Reihe {row.name} hat keine Palette zum Entnehmen.")
            if available_count(self.session, row_id) <= 0:
                raise HallPreconditionError(
                    f"Alle Paletten in Reihe {row.name} sind bereits Agilox-Auftraegen zugeordnet."
                )
            slot.state = PalletState.EMPTY
            self.session.add(slot)
            self.session.commit()
            self.session.refresh(slot)
            logger.info("Palette aus Reihe %s, Position %s entnommen.", row.name, slot.position_index)

        self._dispatch_next(row_id)
        self.notify()
        return slot

    def set_article(self, row_id: int, article: str) -> HallRow:
        """Setzt den Artikel der Reihe; nur erlaubt, solange kein Slot belegt ist."""
        with self.row_locks.hold(row_id):
            self.session.expire_all()
            row = self._get_row(row_id)
            label = (article or "").strip()
            if not label:
                raise HallPreconditionError(f"Artikelname fuer Reihe {row.name} darf nicht leer sein.")
            if count_slots(self.session, row_id, PalletState.OCCUPIED) > 0:
                raise HallPreconditionError(
                    f"Reihe {row.name} ist nicht leer, Artikel kann erst geaendert werden, "
                    "wenn alle Paletten entnommen sind."
                )
            row.article = label
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
            logger.info("Artikel der Reihe %s auf '%s' gesetzt.", row.name, label)
        self.notify()
        return row


def get_dispatch_service(
    session: Session = Depends(get_session),
    gateway: FleetGateway = Depends(get_fleet_gateway),
) -> DispatchService:
    return DispatchService(session, gateway)
