from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from sortinghall.models.row_call import RowCallRead


class PalletState(str, Enum):
    EMPTY = "empty"
    OCCUPIED = "occupied"
    IN_TRANSIT = "in_transit"  # Palette liegt auf dem Fahrzeug


# Zustände, in denen ein Slot physisch eine Palette der Reihe bindet
HELD_STATES = (PalletState.OCCUPIED, PalletState.IN_TRANSIT)


class HallRowBase(SQLModel):
    name: str = Field(index=True, unique=True)
    color_hex: str = Field(default="#000000", max_length=9)
    capacity: int = Field(ge=0)
    # Leerer String = Reihe ohne Artikel
    article: str = ""


class HallRow(HallRowBase, table=True):
    __tablename__ = "hall_row"  # type: ignore[reportAssignmentType]
    id: Optional[int] = Field(default=None, primary_key=True)


class PalletSlot(SQLModel, table=True):
    """Eine Position in einer Reihe; Index 0 ist die Abholseite."""

    __tablename__ = "pallet_slot"  # type: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint("row_id", "position_index", name="uq_pallet_slot_row_position"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    row_id: int = Field(foreign_key="hall_row.id", index=True, ondelete="CASCADE")
    position_index: int = Field(ge=0)
    state: PalletState = Field(default=PalletState.EMPTY)


class WorkTable(SQLModel, table=True):
    __tablename__ = "work_table"  # type: ignore[reportAssignmentType]
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)


class PalletSlotRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    position_index: int
    state: PalletState


class WorkTableRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class HallRowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color_hex: str
    capacity: int
    article: str
    slots: List[PalletSlotRead] = []
    occupied_count: int = 0
    available_count: int = 0
    # offene Rufe in FIFO-Reihenfolge
    pending_calls: List[RowCallRead] = []


class ArticleUpdateSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    article: str

    @field_validator("article")
    def article_trimmed(cls, v: str) -> str:
        return v.strip()
