from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class AgiloxAction(str, Enum):
    PICKUP = "pickup"
    DROP = "drop"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, raw: Any) -> "AgiloxAction":
        """Wandelt den Rohwert aus dem Callback um, wirft nie."""
        token = _normalize_token(raw)
        for member in (cls.PICKUP, cls.DROP):
            if token == member.value:
                return member
        return cls.UNRECOGNIZED


class AgiloxStatus(str, Enum):
    OK = "ok"
    PALLET_NOT_FOUND = "pallet_not_found"
    OCCUPIED = "occupied"
    ORDER_CANCELED = "order_canceled"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, raw: Any) -> "AgiloxStatus":
        token = _normalize_token(raw)
        if token and token != cls.UNRECOGNIZED.value:
            try:
                return cls(token)
            except ValueError:
                pass
        return cls.UNRECOGNIZED


def _normalize_token(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return raw.strip().lower()


# Auftragsnummern landen in einer BigInteger-Spalte (signed 64 bit)
ORDER_ID_MIN = -(2**63)
ORDER_ID_MAX = 2**63 - 1


def parse_order_id(value: Any) -> Optional[int]:
    """Auftragsnummer als int: Zahl oder numerischer String im 64-bit-Bereich, sonst None."""
    if value is None or isinstance(value, bool):
        return None
    result: Optional[int] = None
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        result = int(value) if value.is_integer() else None
    elif isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            result = int(text)
    if result is None or not ORDER_ID_MIN <= result <= ORDER_ID_MAX:
        return None
    return result


class AgiloxCallback(BaseModel):
    """Callback-Payload von Agilox.

    Alle Felder sind tolerant: nicht parsebare Werte werden zu None bzw.
    zum Rohstring, damit ein fehlerhafter Callback nie zu einem Fehler führt.
    """

    model_config = ConfigDict(extra="ignore")

    orderid: Optional[int] = None
    action: Optional[str] = None
    status: Optional[str] = None
    row: Optional[str] = None
    table: Optional[str] = None

    @field_validator("orderid", mode="before")
    def normalize_orderid(cls, v):
        return parse_order_id(v)

    @field_validator("action", "status", "row", "table", mode="before")
    def keep_raw_string(cls, v):
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @property
    def parsed_action(self) -> AgiloxAction:
        return AgiloxAction.parse(self.action)

    @property
    def parsed_status(self) -> AgiloxStatus:
        return AgiloxStatus.parse(self.status)
