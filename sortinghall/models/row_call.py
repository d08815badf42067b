from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    # zeitzonenbehaftet, neuere SQLModel-Versionen lehnen naive Werte ab
    return datetime.now(timezone.utc)


class RowCallStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RowCallBase(SQLModel):
    table_id: int = Field(foreign_key="work_table.id", index=True)
    # None nur bei einem Ruf ohne Quellreihe
    row_id: Optional[int] = Field(default=None, foreign_key="hall_row.id", index=True)
    requested_at: datetime = Field(default_factory=utcnow)
    status: RowCallStatus = Field(default=RowCallStatus.PENDING, index=True)

    # Von Agilox vergebene Auftragsnummer, wird genau einmal gesetzt
    order_id: Optional[int] = Field(default=None, sa_type=BigInteger, index=True)

    # Rohwerte des letzten Callbacks (Audit), auch wenn unbekannt
    last_agilox_action: Optional[str] = None
    last_agilox_status: Optional[str] = None


class RowCall(RowCallBase, table=True):
    __tablename__ = "row_call"  # type: ignore[reportAssignmentType]
    id: Optional[int] = Field(default=None, primary_key=True)

    @property
    def is_pending(self) -> bool:
        return self.status == RowCallStatus.PENDING

    @property
    def is_dispatched(self) -> bool:
        return self.order_id is not None

    def assign_order_id(self, order_id: int) -> None:
        """Setzt die Auftragsnummer; eine einmal gesetzte Nummer bleibt unverändert."""
        if self.order_id is not None and self.order_id != order_id:
            raise ValueError(
                f"RowCall {self.id} hat bereits OrderId {self.order_id}, {order_id} wird verworfen"
            )
        self.order_id = order_id


class RowCallRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_id: int
    row_id: Optional[int] = None
    requested_at: datetime
    status: RowCallStatus
    order_id: Optional[int] = None
    last_agilox_action: Optional[str] = None
    last_agilox_status: Optional[str] = None


class ActivityRead(BaseModel):
    text: str
    severity: str


class TableOverviewRead(BaseModel):
    id: int
    name: str
    pending_call: Optional[RowCallRead] = None
    last_call: Optional[RowCallRead] = None
    activity: Optional[ActivityRead] = None


class HallStatusRead(BaseModel):
    has_active: bool = False
    row_name: Optional[str] = None
    article: Optional[str] = None
    table_name: Optional[str] = None
    order_id: Optional[int] = None
    activity: Optional[ActivityRead] = None


class CallRowSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    row_id: int


class CallArticleSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    article: str

    @field_validator("article")
    def article_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("article darf nicht leer sein")
        return v.strip()
