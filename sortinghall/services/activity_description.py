from dataclasses import dataclass
from enum import Enum

from sortinghall.models.agilox import AgiloxAction, AgiloxStatus
from sortinghall.models.row_call import RowCall


class ActivitySeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ActivityDescription:
    text: str
    severity: ActivitySeverity = ActivitySeverity.INFO


def describe_activity(call: RowCall) -> ActivityDescription:
    """Lesbarer Text zur aktuellen Agilox-Aktivität eines Rufs (für die UI)."""
    # Noch keine Auftragsnummer: Agilox weiss noch nichts vom Ruf
    if call.order_id is None:
        return ActivityDescription("wartet auf Palette vom Lageristen")

    if not (call.last_agilox_status or "").strip() and not (call.last_agilox_action or "").strip():
        return ActivityDescription("Auftrag an Agilox gesendet, warte auf erste Reaktion")

    status = AgiloxStatus.parse(call.last_agilox_status)
    action = AgiloxAction.parse(call.last_agilox_action)

    if status == AgiloxStatus.ORDER_CANCELED:
        return ActivityDescription(
            "Auftrag storniert, Agilox legt die Palette gemaess Workflow ab",
            ActivitySeverity.WARNING,
        )
    if status == AgiloxStatus.PALLET_NOT_FOUND:
        return ActivityDescription(
            "Palette in der Reihe nicht gefunden, Ruf kann nicht erfuellt werden",
            ActivitySeverity.ERROR,
        )
    if status == AgiloxStatus.OCCUPIED:
        return ActivityDescription(
            "Zieltisch ist belegt, Agilox wartet auf Freigabe",
            ActivitySeverity.WARNING,
        )
    if status == AgiloxStatus.OK:
        if action == AgiloxAction.PICKUP:
            return ActivityDescription("Agilox hat die Palette aufgenommen und faehrt zum Tisch")
        if action == AgiloxAction.DROP:
            return ActivityDescription("Palette wurde am Tisch abgestellt")
        return ActivityDescription("Agilox hat einen Workflow-Schritt abgeschlossen")
    return ActivityDescription("Agilox bearbeitet den Auftrag")
