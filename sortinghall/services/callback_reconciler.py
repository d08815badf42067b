"""
Verarbeitung der Agilox-Callbacks.

Ein Callback wird über die Auftragsnummer (orderid) einem offenen Ruf
zugeordnet. Reihe/Tisch im Callback sind nur informativ: Abweichungen werden
geloggt, entschieden wird nach orderid.

    order_canceled (jede Aktion) -> Ruf storniert, Slots unverändert
    pickup + ok                 -> vorderster belegter Slot IN_TRANSIT, Ruf bleibt offen
    pickup + pallet_not_found   -> Ruf storniert
    drop + ok                   -> vorderster IN_TRANSIT (sonst OCCUPIED) Slot leer, Ruf geliefert
    drop + occupied             -> Tisch belegt, Agilox wartet; nichts ändern
    alles andere                -> nur loggen

Fehlt der erwartete Slot, wird nur die Slot-Änderung übersprungen; der Ruf
wechselt trotzdem seinen Status.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlmodel import Session, col, select

from sortinghall.models.agilox import AgiloxAction, AgiloxCallback, AgiloxStatus
from sortinghall.models.hall import HallRow, PalletState, WorkTable
from sortinghall.models.row_call import RowCall, RowCallStatus
from sortinghall.routes.notification_routes import trigger_hall_updated_sync
from sortinghall.services.hall_locks import ROW_LOCKS, KeyedLocks
from sortinghall.services.hall_queries import bottom_slot

logger = logging.getLogger("agilox")


@dataclass
class ReconcileResult:
    matched: bool
    call_id: Optional[int] = None
    call_status: Optional[RowCallStatus] = None


class CallbackReconciler:
    def __init__(
        self,
        session: Session,
        notify: Optional[Callable[[], None]] = None,
        row_locks: KeyedLocks = ROW_LOCKS,
    ):
        self.session = session
        self.notify = notify or trigger_hall_updated_sync
        self.row_locks = row_locks

    def _find_pending_call(self, order_id: int) -> Optional[RowCall]:
        stmt = (
            select(RowCall)
            .where(RowCall.status == RowCallStatus.PENDING, RowCall.order_id == order_id)
            .order_by(col(RowCall.id))
        )
        calls = list(self.session.exec(stmt).all())
        if len(calls) > 1:
            logger.warning(
                "Mehrere offene Rufe mit OrderId=%s gefunden (%s), verwende Ruf %s.",
                order_id, [c.id for c in calls], calls[0].id,
            )
        return calls[0] if calls else None

    def process(self, callback: AgiloxCallback) -> ReconcileResult:
        action = callback.parsed_action
        status = callback.parsed_status
        logger.info(
            "Verarbeite Agilox-Callback: orderid=%s, action=%s, row=%s, table=%s, status=%s",
            callback.orderid, callback.action, callback.row, callback.table, callback.status,
        )

        if callback.orderid is None:
            logger.warning("Agilox-Callback ohne verwertbare orderid verworfen (row=%s, table=%s).",
                           callback.row, callback.table)
            return ReconcileResult(matched=False)

        call = self._find_pending_call(callback.orderid)
        if call is None:
            logger.warning(
                "Kein offener Ruf fuer OrderId=%s gefunden (row=%s, table=%s).",
                callback.orderid, callback.row, callback.table,
            )
            return ReconcileResult(matched=False)

        with self.row_locks.hold_optional(call.row_id):
            # unter der Sperre neu lesen: Storno oder ein anderer Callback kann dazwischen gekommen sein
            self.session.expire_all()
            call = self._find_pending_call(callback.orderid)
            if call is None:
                logger.warning("Ruf fuer OrderId=%s ist inzwischen abgeschlossen, Callback verworfen.",
                               callback.orderid)
                return ReconcileResult(matched=False)

            # Rohwerte fuer Audit/Debugging
            call.last_agilox_action = callback.action
            call.last_agilox_status = callback.status

            self._log_row_table_mismatch(call, callback)

            if status == AgiloxStatus.ORDER_CANCELED:
                self._handle_order_canceled(call, callback)
            elif action == AgiloxAction.PICKUP:
                self._handle_pickup(call, status, callback)
            elif action == AgiloxAction.DROP:
                self._handle_drop(call, status, callback)
            else:
                logger.warning(
                    "Agilox-Callback mit unbekannter action='%s' fuer OrderId=%s, status='%s'",
                    callback.action, callback.orderid, callback.status,
                )

            self.session.add(call)
            self.session.commit()
            self.session.refresh(call)
            result = ReconcileResult(matched=True, call_id=call.id, call_status=call.status)

        self.notify()
        return result

    def _handle_pickup(self, call: RowCall, status: AgiloxStatus, callback: AgiloxCallback) -> None:
        if status == AgiloxStatus.OK:
            slot = bottom_slot(self.session, call.row_id, PalletState.OCCUPIED) if call.row_id else None
            if slot is None:
                logger.warning(
                    "Pickup ok, aber keine belegte Position in Reihe %s fuer Ruf %s. "
                    "Reihenstand weicht evtl. von Agilox ab.",
                    call.row_id, call.id,
                )
                return
            slot.state = PalletState.IN_TRANSIT
            self.session.add(slot)
            logger.info("Pickup ok fuer Ruf %s: Slot %s (Position %s) ist jetzt IN_TRANSIT.",
                        call.id, slot.id, slot.position_index)
        elif status == AgiloxStatus.PALLET_NOT_FOUND:
            call.status = RowCallStatus.CANCELLED
            logger.warning("Pickup pallet_not_found fuer Ruf %s in Reihe %s - Ruf storniert.",
                           call.id, call.row_id)
        else:
            logger.warning("Unbehandelter Pickup-Status '%s' fuer Ruf %s (OrderId=%s).",
                           callback.status, call.id, callback.orderid)

    def _handle_drop(self, call: RowCall, status: AgiloxStatus, callback: AgiloxCallback) -> None:
        if status == AgiloxStatus.OK:
            slot = None
            if call.row_id is not None:
                slot = (bottom_slot(self.session, call.row_id, PalletState.IN_TRANSIT)
                        or bottom_slot(self.session, call.row_id, PalletState.OCCUPIED))
            call.status = RowCallStatus.DELIVERED
            if slot is None:
                logger.warning(
                    "Drop ok, aber weder IN_TRANSIT noch belegte Position in Reihe %s fuer Ruf %s. "
                    "Ruf als geliefert markiert, Reihenstand evtl. falsch.",
                    call.row_id, call.id,
                )
                return
            slot.state = PalletState.EMPTY
            self.session.add(slot)
            logger.info("Drop ok fuer Ruf %s: Slot %s freigegeben, Ruf geliefert.", call.id, slot.id)
        elif status == AgiloxStatus.OCCUPIED:
            logger.info("Drop occupied fuer Ruf %s: Tisch belegt, Agilox wartet.", call.id)
        elif status == AgiloxStatus.PALLET_NOT_FOUND:
            logger.warning("Drop pallet_not_found fuer Ruf %s ist unerwartet. Rohstatus='%s'",
                           call.id, callback.status)
        else:
            logger.warning("Unbehandelter Drop-Status '%s' fuer Ruf %s (OrderId=%s).",
                           callback.status, call.id, callback.orderid)

    def _handle_order_canceled(self, call: RowCall, callback: AgiloxCallback) -> None:
        # Wo die Palette physisch bleibt, regelt Agilox selbst; Slots bleiben wie sie sind
        call.status = RowCallStatus.CANCELLED
        logger.info("order_canceled fuer Ruf %s (OrderId=%s) - Ruf storniert.", call.id, callback.orderid)

    def _log_row_table_mismatch(self, call: RowCall, callback: AgiloxCallback) -> None:
        row = self.session.get(HallRow, call.row_id) if call.row_id is not None else None
        table = self.session.get(WorkTable, call.table_id)
        row_name = row.name if row else None
        table_name = table.name if table else None
        row_matches = (row_name or "").casefold() == (callback.row or "").casefold()
        table_matches = (table_name or "").casefold() == (callback.table or "").casefold()
        if not row_matches or not table_matches:
            logger.warning(
                "Agilox-Callback Reihe/Tisch weichen ab: Ruf hat row=%s, table=%s; Callback row=%s, "
                "table=%s; orderid=%s",
                row_name, table_name, callback.row, callback.table, callback.orderid,
            )
